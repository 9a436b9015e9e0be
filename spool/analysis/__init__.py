"""
Spool Analysis Module

Static checks over compiled programs, fed through Dialogue.analyse().
"""

from spool.analysis.checkers import (
    Analyser,
    Context,
    Diagnosis,
    Severity,
    UndefinedNodeChecker,
    UnusedVariableChecker,
    VariableLister,
)

__all__ = [
    "Analyser",
    "Context",
    "Diagnosis",
    "Severity",
    "UndefinedNodeChecker",
    "UnusedVariableChecker",
    "VariableLister",
]

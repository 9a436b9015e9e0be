"""
Spool Static Analysis

Read-only inspection of compiled programs. A Context feeds every program it
is given to its analysers and collects their diagnoses.

Key classes:
- Diagnosis / Severity: A single finding
- Analyser: Base class for program checks
- VariableLister: Lists every variable the program touches
- UnusedVariableChecker: Variables written but never read
- UndefinedNodeChecker: RunNode targets that do not exist
- Context: Runs analysers over programs
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from spool.program import ByteCode, Program


class Severity(Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass
class Diagnosis:
    message: str
    severity: Severity = Severity.WARNING
    node_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "severity": self.severity.value,
            "node_name": self.node_name,
        }

    def __str__(self) -> str:
        where = f" (node {self.node_name})" if self.node_name else ""
        return f"{self.severity.value}: {self.message}{where}"


class Analyser:
    """Base class for program analysers."""

    def diagnose(self, program: Program) -> List[Diagnosis]:
        raise NotImplementedError


class VariableLister(Analyser):
    """Reports every variable read or written."""

    def diagnose(self, program: Program) -> List[Diagnosis]:
        reads, writes = _variable_usage(program)
        return [
            Diagnosis(f"Script uses variable {name}", Severity.INFO)
            for name in sorted(reads | writes)
        ]


class UnusedVariableChecker(Analyser):
    """Variables that are stored somewhere but never read back."""

    def diagnose(self, program: Program) -> List[Diagnosis]:
        reads, writes = _variable_usage(program)
        return [
            Diagnosis(f"Variable {name} is set, but never read", Severity.WARNING)
            for name in sorted(writes - reads)
        ]


class UndefinedNodeChecker(Analyser):
    """RunNode instructions that name a node missing from the program."""

    def diagnose(self, program: Program) -> List[Diagnosis]:
        diagnoses = []
        for node in program.nodes.values():
            for instruction in node.instructions:
                if instruction.opcode is not ByteCode.RUN_NODE or not instruction.operands:
                    continue
                target = instruction.operand_a
                if target not in program.nodes:
                    diagnoses.append(Diagnosis(
                        f"Jumps to undefined node {target}", Severity.ERROR, node.name
                    ))
        return diagnoses


DEFAULT_ANALYSERS = (VariableLister, UnusedVariableChecker, UndefinedNodeChecker)


class Context:
    """Collects programs and runs analysers over them."""

    def __init__(self, *analysers: Analyser):
        self.analysers: List[Analyser] = list(analysers) or [cls() for cls in DEFAULT_ANALYSERS]
        self.programs: List[Program] = []

    def add_program_to_analysis(self, program: Optional[Program]) -> None:
        if program is not None:
            self.programs.append(program)

    def finish_analysis(self) -> List[Diagnosis]:
        diagnoses: List[Diagnosis] = []
        for analyser in self.analysers:
            for program in self.programs:
                diagnoses.extend(analyser.diagnose(program))
        return diagnoses


def _variable_usage(program: Program):
    reads: Set[str] = set()
    writes: Set[str] = set()
    for node in program.nodes.values():
        for instruction in node.instructions:
            if instruction.opcode is ByteCode.PUSH_VARIABLE:
                reads.add(instruction.operand_a)
            elif instruction.opcode is ByteCode.STORE_VARIABLE:
                writes.add(instruction.operand_a)
    return reads, writes

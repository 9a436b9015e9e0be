"""Test fixtures for the Spool test suite."""
import pytest
import sys
from pathlib import Path
from typing import Any, Dict, List

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from spool.runtime.dialogue import Dialogue
from spool.runtime.storage import MemoryVariableStore


def op(opcode: str, *operands) -> Dict[str, Any]:
    """Build one instruction dict."""
    out: Dict[str, Any] = {"opcode": opcode}
    if operands:
        out["operands"] = list(operands)
    return out


class LogCapture:
    """Collects messages sent to a dialogue's logging callbacks."""

    def __init__(self):
        self.debug: List[str] = []
        self.error: List[str] = []

    def attach(self, dialogue: Dialogue) -> Dialogue:
        dialogue.log_debug_message = self.debug.append
        dialogue.log_error_message = self.error.append
        return dialogue


@pytest.fixture
def logs() -> LogCapture:
    return LogCapture()


@pytest.fixture
def storage() -> MemoryVariableStore:
    return MemoryVariableStore()


@pytest.fixture
def dialogue(storage: MemoryVariableStore, logs: LogCapture) -> Dialogue:
    """Dialogue with capturing loggers and no program loaded."""
    return logs.attach(Dialogue(storage))


@pytest.fixture
def start_end_program() -> Dict[str, Any]:
    """Start hands over to End, which has no instructions."""
    return {
        "nodes": {
            "Start": {"instructions": [op("RunNode", "End")]},
            "End": {"instructions": []},
        },
    }


@pytest.fixture
def conversation_program() -> Dict[str, Any]:
    """
    Start says hello and offers three options:
    0 -> stores $choice and runs Shop
    1 -> waves, says bye and stops
    2 -> issues the stop command
    """
    return {
        "nodes": {
            "Start": {
                "tags": ["intro", "greeting"],
                "instructions": [
                    op("RunLine", "line:hello"),
                    op("AddOption", "opt:a", "L_a"),
                    op("AddOption", "opt:b", "L_b"),
                    op("AddOption", "opt:c", "L_c"),
                    op("ShowOptions"),
                    op("Jump"),
                    op("Label", "L_a"),
                    op("PushNumber", 1),
                    op("StoreVariable", "$choice"),
                    op("Pop"),
                    op("RunNode", "Shop"),
                    op("Label", "L_b"),
                    op("RunCommand", "wave"),
                    op("RunLine", "line:bye"),
                    op("Stop"),
                    op("Label", "L_c"),
                    op("RunCommand", "stop"),
                    op("RunLine", "line:unreachable"),
                ],
            },
            "Shop": {
                "tags": ["shop"],
                "source_text_string_id": "Shop-source",
                "instructions": [op("RunLine", "line:shop")],
            },
        },
        "strings": {
            "line:hello": "Hello there.",
            "opt:a": "Go shopping",
            "opt:b": "Say goodbye",
            "opt:c": "Walk away",
            "line:bye": "Bye!",
            "line:unreachable": "You should never see this.",
            "line:shop": "Welcome to the shop.",
            "Shop-source": "Welcome to the shop.",
        },
        "line_info": {
            "line:hello": {"node_name": "Start", "line_number": 1},
        },
    }


@pytest.fixture
def visit_program() -> Dict[str, Any]:
    """Counter records visitCount/visited results into variables."""
    return {
        "nodes": {
            "Counter": {
                "instructions": [
                    op("PushString", "Counter"),
                    op("PushNumber", 1),
                    op("CallFunc", "visitCount"),
                    op("StoreVariable", "$count"),
                    op("Pop"),
                    op("PushNumber", 0),
                    op("CallFunc", "visitCount"),
                    op("StoreVariable", "$current"),
                    op("Pop"),
                    op("PushString", "Counter"),
                    op("PushNumber", 1),
                    op("CallFunc", "visited"),
                    op("StoreVariable", "$visited"),
                    op("Pop"),
                ],
            },
        },
    }


@pytest.fixture
def math_program() -> Dict[str, Any]:
    """Computes 2 + 3, compares it with 5 and branches on the result."""
    return {
        "nodes": {
            "Math": {
                "instructions": [
                    op("PushNumber", 2),
                    op("PushNumber", 3),
                    op("CallFunc", "Add"),
                    op("StoreVariable", "$sum"),
                    op("Pop"),
                    op("PushVariable", "$sum"),
                    op("PushNumber", 5),
                    op("CallFunc", "EqualTo"),
                    op("JumpIfFalse", "L_no"),
                    op("RunLine", "line:yes"),
                    op("JumpTo", "L_end"),
                    op("Label", "L_no"),
                    op("RunLine", "line:no"),
                    op("Label", "L_end"),
                ],
            },
        },
        "strings": {"line:yes": "It is five.", "line:no": "It is not five."},
    }

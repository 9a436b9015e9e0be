"""
Spool Compiled Programs

A compiled program maps node names to instruction sequences and carries the
string table the instructions refer to. Programs are stored as JSON and
validated against schemas/program.schema.json before use.

Key classes:
- ByteCode: Instruction opcodes understood by the virtual machine
- Instruction: One opcode plus its operands
- Node: A named, independently addressable unit of dialogue
- Program: The loaded, validated compiled program
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple, Union

from jsonschema import Draft7Validator

from spool.errors import ProgramLoadError

if TYPE_CHECKING:
    from spool.runtime.library import Library

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schemas" / "program.schema.json"


class ByteCode(Enum):
    LABEL = "Label"
    JUMP_TO = "JumpTo"
    JUMP = "Jump"
    RUN_LINE = "RunLine"
    RUN_COMMAND = "RunCommand"
    ADD_OPTION = "AddOption"
    SHOW_OPTIONS = "ShowOptions"
    PUSH_STRING = "PushString"
    PUSH_NUMBER = "PushNumber"
    PUSH_BOOL = "PushBool"
    PUSH_NULL = "PushNull"
    JUMP_IF_FALSE = "JumpIfFalse"
    POP = "Pop"
    CALL_FUNC = "CallFunc"
    PUSH_VARIABLE = "PushVariable"
    STORE_VARIABLE = "StoreVariable"
    STOP = "Stop"
    RUN_NODE = "RunNode"


# Operand types per opcode; RunNode's single operand is optional
OPERAND_TYPES: Dict[ByteCode, Tuple[type, ...]] = {
    ByteCode.LABEL: (str,),
    ByteCode.JUMP_TO: (str,),
    ByteCode.JUMP: (),
    ByteCode.RUN_LINE: (str,),
    ByteCode.RUN_COMMAND: (str,),
    ByteCode.ADD_OPTION: (str, str),
    ByteCode.SHOW_OPTIONS: (),
    ByteCode.PUSH_STRING: (str,),
    ByteCode.PUSH_NUMBER: (float,),
    ByteCode.PUSH_BOOL: (bool,),
    ByteCode.PUSH_NULL: (),
    ByteCode.JUMP_IF_FALSE: (str,),
    ByteCode.POP: (),
    ByteCode.CALL_FUNC: (str,),
    ByteCode.PUSH_VARIABLE: (str,),
    ByteCode.STORE_VARIABLE: (str,),
    ByteCode.STOP: (),
    ByteCode.RUN_NODE: (str,),
}

LABEL_OPERANDS = {ByteCode.JUMP_TO: 0, ByteCode.JUMP_IF_FALSE: 0, ByteCode.ADD_OPTION: 1}


def _operand_matches(operand: Any, expected: type) -> bool:
    if expected is float:
        return isinstance(operand, (int, float)) and not isinstance(operand, bool)
    return isinstance(operand, expected)


@dataclass(frozen=True)
class Instruction:
    opcode: ByteCode
    operands: Tuple[Any, ...] = ()

    @property
    def operand_a(self) -> Any:
        return self.operands[0] if self.operands else None

    @property
    def operand_b(self) -> Any:
        return self.operands[1] if len(self.operands) > 1 else None

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"opcode": self.opcode.value}
        if self.operands:
            out["operands"] = list(self.operands)
        return out

    def describe(self, program: "Program" = None, library: "Library" = None) -> str:
        """One disassembly line: opcode, operands and a resolving comment."""
        operands = " ".join(
            json.dumps(op) if isinstance(op, str) else str(op) for op in self.operands
        )
        text = f"{self.opcode.value:<16}{operands}"
        comment = self._comment(program, library)
        if comment:
            text = f"{text:<48}; {comment}"
        return text.rstrip()

    def _comment(self, program: Optional["Program"], library: Optional["Library"]) -> str:
        if self.opcode in (ByteCode.RUN_LINE, ByteCode.ADD_OPTION) and program is not None:
            line = program.strings.get(self.operand_a)
            return json.dumps(line) if line is not None else "<missing string>"
        if self.opcode is ByteCode.CALL_FUNC and library is not None:
            from spool.runtime.library import Operator

            operator = Operator.lookup(self.operand_a)
            if not library.function_exists(self.operand_a):
                return "<undefined function>"
            info = library.get_function(self.operand_a)
            arity = "variadic" if info.is_variadic else f"{info.param_count} params"
            if operator is not None:
                return f"operator {operator.symbol} ({arity})"
            return f"function ({arity})"
        return ""


@dataclass
class LineInfo:
    node_name: Optional[str] = None
    line_number: Optional[int] = None
    comment: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return {k: v for k, v in
                (("node_name", self.node_name), ("line_number", self.line_number),
                 ("comment", self.comment)) if v is not None}


@dataclass
class LocalisedLine:
    """A line localised into the current locale, used by string tables."""
    line_code: str
    line_text: str
    comment: Optional[str] = None


@dataclass
class Node:
    name: str
    instructions: List[Instruction] = field(default_factory=list)
    labels: Dict[str, int] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    source_text_string_id: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "name": self.name,
            "instructions": [i.to_json() for i in self.instructions],
            "labels": dict(self.labels),
            "tags": list(self.tags),
        }
        if self.source_text_string_id is not None:
            out["source_text_string_id"] = self.source_text_string_id
        return out


StringTable = Mapping[str, Union[str, LocalisedLine]]
ProgramSource = Union["Program", Dict[str, Any], bytes, bytearray, str, "os.PathLike[str]"]


class Program:
    """
    The compiled dialogue program.

    Nodes are read-only once loaded; only the string table can be extended
    through load_strings().
    """

    def __init__(self,
                 nodes: Dict[str, Node] = None,
                 strings: Dict[str, str] = None,
                 line_info: Dict[str, LineInfo] = None):
        self._nodes: Dict[str, Node] = dict(nodes or {})
        self.strings: Dict[str, str] = dict(strings or {})
        self.line_info: Dict[str, LineInfo] = dict(line_info or {})

    @property
    def nodes(self) -> Mapping[str, Node]:
        return MappingProxyType(self._nodes)

    # -----------------------------
    # Loading
    # -----------------------------

    @classmethod
    def load(cls, source: ProgramSource) -> "Program":
        """
        Load a program from a Program, a JSON dict, a serialized byte buffer,
        or a path to a JSON file.
        """
        if isinstance(source, Program):
            return source
        if isinstance(source, dict):
            return cls.from_json(source)
        if isinstance(source, (bytes, bytearray)):
            return cls.from_bytes(bytes(source))
        if isinstance(source, (str, os.PathLike)):
            return cls.from_file(source)
        raise ProgramLoadError(f"Cannot load a program from {type(source).__name__}")

    @classmethod
    def from_file(cls, path: Union[str, "os.PathLike[str]"]) -> "Program":
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise ProgramLoadError(f"Cannot read program file {path}: {e}") from e
        logger.debug("Loaded %d bytes from %s", len(data), path)
        return cls.from_bytes(data)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Program":
        try:
            obj = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ProgramLoadError(f"Program is not valid JSON: {e}") from e
        if not isinstance(obj, dict):
            raise ProgramLoadError("Program JSON must be an object")
        return cls.from_json(obj)

    @classmethod
    def from_json(cls, obj: Dict[str, Any]) -> "Program":
        errors = validate_program_json(obj)
        if errors:
            raise ProgramLoadError(
                f"Program failed validation with {len(errors)} error(s): {errors[0]}",
                errors,
            )

        nodes: Dict[str, Node] = {}
        for name, node_data in obj["nodes"].items():
            instructions = [
                Instruction(ByteCode(i["opcode"]), tuple(i.get("operands", ())))
                for i in node_data["instructions"]
            ]
            labels = dict(node_data.get("labels", {}))
            for index, instruction in enumerate(instructions):
                if instruction.opcode is ByteCode.LABEL:
                    labels.setdefault(instruction.operand_a, index)
            nodes[name] = Node(
                name=node_data.get("name", name),
                instructions=instructions,
                labels=labels,
                tags=list(node_data.get("tags", [])),
                source_text_string_id=node_data.get("source_text_string_id"),
            )

        errors = []
        for node in nodes.values():
            errors.extend(_check_node(node))
        if errors:
            raise ProgramLoadError(
                f"Program failed validation with {len(errors)} error(s): {errors[0]}",
                errors,
            )

        line_info = {
            code: LineInfo(**info) for code, info in obj.get("line_info", {}).items()
        }
        program = cls(nodes, obj.get("strings", {}), line_info)
        logger.debug("Loaded program with %d node(s) and %d string(s)",
                     len(program._nodes), len(program.strings))
        return program

    def to_json(self) -> Dict[str, Any]:
        return {
            "nodes": {name: node.to_json() for name, node in self._nodes.items()},
            "strings": dict(self.strings),
            "line_info": {code: info.to_json() for code, info in self.line_info.items()},
        }

    def digest(self) -> str:
        canon = json.dumps(self.to_json(), sort_keys=True, separators=(",", ":"))
        return "sha256:" + hashlib.sha256(canon.encode("utf-8")).hexdigest()

    # -----------------------------
    # Queries
    # -----------------------------

    def get_text_for_node(self, node_name: str) -> Optional[str]:
        """Source text of the node, if it was preserved at compile time."""
        node = self._nodes.get(node_name)
        if node is None or node.source_text_string_id is None:
            return None
        return self.strings.get(node.source_text_string_id)

    def get_tags_for_node(self, node_name: str) -> Optional[List[str]]:
        node = self._nodes.get(node_name)
        if node is None:
            return None
        return list(node.tags)

    def load_strings(self, string_table: StringTable) -> None:
        """Merge a string table into the program; later loads win."""
        for code, entry in string_table.items():
            if isinstance(entry, LocalisedLine):
                self.strings[code] = entry.line_text
                if entry.comment is not None:
                    info = self.line_info.setdefault(code, LineInfo())
                    info.comment = entry.comment
            else:
                self.strings[code] = entry

    def dump_code(self, library: "Library" = None) -> str:
        """Human-readable disassembly, for diagnostics only."""
        out: List[str] = []
        for name, node in self._nodes.items():
            out.append(f"Node {name}:")
            labels_at: Dict[int, List[str]] = {}
            for label, index in node.labels.items():
                labels_at.setdefault(index, []).append(label)
            for index, instruction in enumerate(node.instructions):
                for label in labels_at.get(index, []):
                    if instruction.opcode is not ByteCode.LABEL:
                        out.append(f"{label}:")
                out.append(f"    {index:<5}{instruction.describe(self, library)}")
            out.append("")
        return "\n".join(out)


def validate_program_json(obj: Dict[str, Any]) -> List[str]:
    """Validate a program dict against program.schema.json."""
    validator = Draft7Validator(_load_schema())
    return [
        f"{error.json_path}: {error.message}"
        for error in sorted(validator.iter_errors(obj), key=lambda e: e.json_path)
    ]


_SCHEMA_CACHE: Dict[str, Any] = {}


def _load_schema() -> Dict[str, Any]:
    if "program" not in _SCHEMA_CACHE:
        with open(SCHEMA_PATH, "r") as f:
            _SCHEMA_CACHE["program"] = json.load(f)
    return _SCHEMA_CACHE["program"]


def _check_node(node: Node) -> List[str]:
    """Operand arity/type and label checks the JSON schema cannot express."""
    errors = []
    for index, instruction in enumerate(node.instructions):
        where = f"{node.name}[{index}] {instruction.opcode.value}"
        expected = OPERAND_TYPES[instruction.opcode]
        operands = instruction.operands
        if instruction.opcode is ByteCode.RUN_NODE and not operands:
            continue
        if len(operands) != len(expected):
            errors.append(f"{where}: expected {len(expected)} operand(s), got {len(operands)}")
            continue
        for operand, expected_type in zip(operands, expected):
            if not _operand_matches(operand, expected_type):
                errors.append(f"{where}: operand {operand!r} is not {expected_type.__name__}")
        position = LABEL_OPERANDS.get(instruction.opcode)
        if position is not None and operands[position] not in node.labels:
            errors.append(f"{where}: unknown label {operands[position]!r}")
    for label, index in node.labels.items():
        if index > len(node.instructions):
            errors.append(f"{node.name}: label {label!r} points past the end of the node")
    return errors

"""
Spool Virtual Machine

Single-step interpreter bound to one compiled program. Each run_next() call
executes exactly one instruction and reports at most one event through the
line, command, options or node-complete handler.

Key classes:
- ExecutionState: STOPPED / WAITING_ON_OPTION_SELECTION / RUNNING
- MachineState: Program counter, value stack and pending options
- VirtualMachine: The stepping interpreter
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple

from spool.errors import DialogueError, ProtocolViolationError, ValueTypeError
from spool.program import ByteCode, Instruction, Node, Program
from spool.runtime.results import (
    CommandResult,
    LineResult,
    NodeCompleteResult,
    OptionSetResult,
)
from spool.value import Value

if TYPE_CHECKING:
    from spool.runtime.dialogue import Dialogue


class ExecutionState(Enum):
    STOPPED = "STOPPED"
    WAITING_ON_OPTION_SELECTION = "WAITING_ON_OPTION_SELECTION"
    RUNNING = "RUNNING"


@dataclass
class MachineState:
    current_node_name: Optional[str] = None
    program_counter: int = 0
    # (line code, destination label)
    current_options: List[Tuple[str, str]] = field(default_factory=list)
    stack: List[Value] = field(default_factory=list)

    def push(self, value) -> None:
        self.stack.append(Value.from_python(value))

    def pop(self) -> Value:
        if not self.stack:
            raise DialogueError(f"Stack underflow in node {self.current_node_name}")
        return self.stack.pop()

    def peek(self) -> Value:
        if not self.stack:
            raise DialogueError(f"Stack underflow in node {self.current_node_name}")
        return self.stack[-1]

    def reset(self, node_name: Optional[str] = None) -> None:
        self.current_node_name = node_name
        self.program_counter = 0
        self.current_options.clear()
        self.stack.clear()


def _ignore(result) -> None:
    pass


class VirtualMachine:
    """Steps through a Program's instructions on behalf of a Dialogue."""

    def __init__(self, dialogue: "Dialogue", program: Program):
        self.dialogue = dialogue
        self.program = program
        self.state = MachineState()
        self.current_node: Optional[Node] = None
        self.execution_state = ExecutionState.STOPPED

        self.line_handler: Callable[[LineResult], None] = _ignore
        self.command_handler: Callable[[CommandResult], None] = _ignore
        self.options_handler: Callable[[OptionSetResult], None] = _ignore
        self.node_complete_handler: Callable[[NodeCompleteResult], None] = _ignore

    @property
    def current_node_name(self) -> Optional[str]:
        return self.state.current_node_name

    def set_node(self, node_name: str) -> bool:
        """Start executing `node_name` from its first instruction."""
        if not self.program.nodes:
            self.dialogue.log_error_message("Cannot load node " + node_name +
                                            ": No nodes have been loaded.")
            return False
        node = self.program.nodes.get(node_name)
        if node is None:
            self.execution_state = ExecutionState.STOPPED
            self.dialogue.log_error_message("No node named " + node_name)
            return False

        self.dialogue.log_debug_message("Running node " + node_name)
        self.current_node = node
        self.state.reset(node_name)
        self.execution_state = ExecutionState.RUNNING
        return True

    def stop(self) -> None:
        self.execution_state = ExecutionState.STOPPED

    def run_next(self) -> None:
        """Execute one instruction."""
        if self.execution_state is ExecutionState.WAITING_ON_OPTION_SELECTION:
            raise ProtocolViolationError(
                "Cannot continue running dialogue. Still waiting on option selection."
            )
        if self.current_node is None:
            self.dialogue.log_error_message("run_next was called before a node was set")
            self.stop()
            return

        if self.execution_state is ExecutionState.STOPPED:
            self.dialogue.log_debug_message("run_next was called on a stopped machine")
            return

        instructions = self.current_node.instructions
        if self.state.program_counter >= len(instructions):
            self._complete_node(None)
            self.dialogue.log_debug_message("Run complete.")
            return

        instruction = instructions[self.state.program_counter]
        self.state.program_counter += 1
        try:
            self.run_instruction(instruction)
        except ValueTypeError as e:
            self.dialogue.log_error_message(
                f"Error in node {self.current_node_name} at "
                f"{instruction.opcode.value}: {e}"
            )
            self.stop()

    def run_instruction(self, instruction: Instruction) -> None:
        op = instruction.opcode
        a = instruction.operand_a
        state = self.state

        if op is ByteCode.LABEL:
            pass

        elif op is ByteCode.JUMP_TO:
            self._jump(a)

        elif op is ByteCode.JUMP:
            self._jump(state.pop().as_string)

        elif op is ByteCode.RUN_LINE:
            self.line_handler(LineResult.from_text(self._resolve_string(a)))

        elif op is ByteCode.RUN_COMMAND:
            self.command_handler(CommandResult.from_text(a))

        elif op is ByteCode.ADD_OPTION:
            state.current_options.append((a, instruction.operand_b))

        elif op is ByteCode.SHOW_OPTIONS:
            self._show_options()

        elif op in (ByteCode.PUSH_STRING, ByteCode.PUSH_NUMBER, ByteCode.PUSH_BOOL):
            state.push(a)

        elif op is ByteCode.PUSH_NULL:
            state.push(Value.NULL)

        elif op is ByteCode.JUMP_IF_FALSE:
            if not state.peek().as_bool:
                self._jump(a)

        elif op is ByteCode.POP:
            state.pop()

        elif op is ByteCode.CALL_FUNC:
            self._call_function(a)

        elif op is ByteCode.PUSH_VARIABLE:
            state.push(self.dialogue.continuity.get_value(a))

        elif op is ByteCode.STORE_VARIABLE:
            self.dialogue.continuity.set_value(a, state.peek())

        elif op is ByteCode.STOP:
            self._complete_node(None)

        elif op is ByteCode.RUN_NODE:
            node_name = a if instruction.operands else state.pop().as_string
            self.node_complete_handler(NodeCompleteResult(node_name))
            if self.execution_state is ExecutionState.STOPPED:
                return
            if not self.set_node(node_name):
                self.stop()

        else:
            raise DialogueError(f"Unknown opcode {op}")

    def _complete_node(self, next_node: Optional[str]) -> None:
        self.node_complete_handler(NodeCompleteResult(next_node))
        self.execution_state = ExecutionState.STOPPED

    def _jump(self, label: str) -> None:
        try:
            self.state.program_counter = self.current_node.labels[label]
        except KeyError:
            raise DialogueError(
                f"Unknown label {label} in node {self.current_node_name}"
            ) from None

    def _resolve_string(self, line_code: str) -> str:
        text = self.program.strings.get(line_code)
        if text is None:
            self.dialogue.log_error_message(f"No string table entry for {line_code}")
            return line_code
        return text

    def _call_function(self, name: str) -> None:
        info = self.dialogue.library.get_function(name)
        if info.is_variadic:
            count = int(self.state.pop().as_number)
        else:
            count = info.param_count
        params = [self.state.pop() for _ in range(count)]
        params.reverse()
        result = info.invoke(*params)
        if info.returns_value:
            self.state.push(result)

    def _show_options(self) -> None:
        options = list(self.state.current_options)
        if not options:
            self.dialogue.log_debug_message("No options to show, stopping.")
            self._complete_node(None)
            return

        self.state.current_options.clear()
        self.execution_state = ExecutionState.WAITING_ON_OPTION_SELECTION
        chosen = False

        def choose(index: int) -> None:
            nonlocal chosen
            if chosen:
                raise ProtocolViolationError("An option has already been selected")
            if self.execution_state is not ExecutionState.WAITING_ON_OPTION_SELECTION:
                raise ProtocolViolationError("Dialogue is no longer waiting on an option")
            if not isinstance(index, int) or not 0 <= index < len(options):
                raise ProtocolViolationError(
                    f"Option index {index!r} is out of range (0-{len(options) - 1})"
                )
            chosen = True
            self.state.push(options[index][1])
            self.execution_state = ExecutionState.RUNNING

        texts = [self._resolve_string(code) for code, _ in options]
        self.options_handler(OptionSetResult.from_strings(texts, choose))

"""
Spool Dialogue

The Dialogue is the main thing clients use. It owns the variable storage,
the function library and the visitation counters, loads a compiled program
and drives a VirtualMachine through it, handing results back one pull at
a time.

Key classes:
- DialogueConfig: Host-tunable settings
- DialogueRun: Pull-based iterator over the results of one run
- Dialogue: The runtime coordinator
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Mapping, Optional

from spool.errors import DialogueConfigurationError, DialogueError
from spool.program import LineInfo, Program, ProgramSource, StringTable
from spool.runtime.library import VARIADIC, Library, StandardLibrary
from spool.runtime.results import (
    CommandResult,
    LineResult,
    NodeCompleteResult,
    OptionSetResult,
    RunnerResult,
)
from spool.runtime.storage import VariableStorage
from spool.runtime.vm import ExecutionState, VirtualMachine
from spool.value import Value

if TYPE_CHECKING:
    from spool.analysis import Context

Logger = Callable[[str], None]

DEFAULT_START = "Start"


@dataclass
class DialogueConfig:
    """Configuration for running dialogue."""
    default_start: str = DEFAULT_START
    stop_command: str = "stop"
    log_run_complete: bool = True


class DialogueRun:
    """
    Results of one Dialogue.run(), produced on demand.

    Every __next__ steps the machine until it reports an event or stops,
    and returns that single event. Nothing executes between pulls.
    """

    def __init__(self, dialogue: "Dialogue", vm: Optional[VirtualMachine]):
        self._dialogue = dialogue
        self._vm = vm
        self._latest: Optional[RunnerResult] = None
        self._finished = vm is None

        if vm is not None:
            vm.line_handler = self._capture
            vm.options_handler = self._capture
            vm.command_handler = self._on_command
            vm.node_complete_handler = self._on_node_complete

    @property
    def finished(self) -> bool:
        return self._finished

    def __iter__(self) -> "DialogueRun":
        return self

    def __next__(self) -> RunnerResult:
        while not self._finished:
            if self._vm.execution_state is ExecutionState.STOPPED:
                self._finish()
                break

            self._latest = None
            self._vm.run_next()
            result, self._latest = self._latest, None

            if self._vm.execution_state is ExecutionState.STOPPED:
                self._finish()
            if result is not None:
                return result
        raise StopIteration

    def _finish(self) -> None:
        self._finished = True
        if self._dialogue.config.log_run_complete:
            self._dialogue.log_debug_message("Dialogue run finished.")

    def _capture(self, result: RunnerResult) -> None:
        self._latest = result

    def _on_command(self, result: CommandResult) -> None:
        if result.command.text == self._dialogue.config.stop_command:
            self._vm.stop()
        self._latest = result

    def _on_node_complete(self, result: NodeCompleteResult) -> None:
        self._dialogue._mark_visited(self._vm.current_node_name)
        self._latest = result


class Dialogue:
    """Runs compiled dialogue against a variable store."""

    def __init__(self, continuity: VariableStorage, config: DialogueConfig = None):
        self.continuity = continuity
        self.config = config or DialogueConfig()

        self.log_debug_message: Optional[Logger] = None
        self.log_error_message: Optional[Logger] = None

        self.program: Optional[Program] = None
        self.visited_node_count: Dict[str, int] = {}
        self._vm: Optional[VirtualMachine] = None

        # StandardLibrary so != follows any override of ==
        self.library: Library = StandardLibrary()
        self.library.register_function("visited", VARIADIC, self._function_is_node_visited)
        self.library.register_function("visitCount", VARIADIC, self._function_node_visit_count)

    # -----------------------------
    # Script functions
    # -----------------------------

    def _function_node_visit_count(self, *parameters: Value) -> int:
        """Times the named node (or the current node) has completed."""
        if len(parameters) == 0:
            node_name = self.current_node
        elif len(parameters) == 1:
            node_name = parameters[0].as_string
            if not self.node_exists(node_name):
                self._error(f"The node {node_name} does not exist.")
                return 0
        else:
            self._error(
                "Incorrect number of parameters to visitCount "
                f"(expected 0 or 1, got {len(parameters)})"
            )
            return 0
        return self.visited_node_count.get(node_name, 0)

    def _function_is_node_visited(self, *parameters: Value) -> bool:
        return self._function_node_visit_count(*parameters) > 0

    def _mark_visited(self, node_name: Optional[str]) -> None:
        if node_name is None:
            return
        self.visited_node_count[node_name] = self.visited_node_count.get(node_name, 0) + 1

    # -----------------------------
    # Loading
    # -----------------------------

    def load_program(self, program: ProgramSource) -> None:
        """Replace the active program. Load errors propagate."""
        self.program = Program.load(program)

    def load_program_file(self, path) -> None:
        self.program = Program.from_file(path)

    def add_string_table(self, string_table: StringTable) -> None:
        if self.program is None:
            self._error("Cannot add a string table: no program is loaded.")
            return
        self.program.load_strings(string_table)

    def get_string_table(self) -> Mapping[str, str]:
        if self.program is None:
            return MappingProxyType({})
        return MappingProxyType(self.program.strings)

    def get_string_info_table(self) -> Mapping[str, LineInfo]:
        if self.program is None:
            return MappingProxyType({})
        return MappingProxyType(self.program.line_info)

    def unload_all(self, clear_visited_nodes: bool = True) -> None:
        """Drop the program. Host-registered functions stay registered."""
        if clear_visited_nodes:
            self.visited_node_count.clear()
        self.program = None

    # -----------------------------
    # Running
    # -----------------------------

    def run(self, start_node: Optional[str] = None) -> DialogueRun:
        """
        Run from `start_node`, returning an iterator of results.

        Each pull gives a LineResult, OptionSetResult, CommandResult or
        NodeCompleteResult. After an OptionSetResult, choose() must be
        called before the next pull.

        Raises:
            DialogueConfigurationError: If a logging callback is missing
            DialogueError: If a previous run is still in progress
        """
        if self.log_debug_message is None:
            raise DialogueConfigurationError("log_debug_message must be set before running")
        if self.log_error_message is None:
            raise DialogueConfigurationError("log_error_message must be set before running")

        if self._vm is not None and self._vm.execution_state is not ExecutionState.STOPPED:
            raise DialogueError("Dialogue is already running; call stop() before running again")

        if self.program is None:
            self.log_error_message("Dialogue.run was called, but no program was loaded. Stopping.")
            return DialogueRun(self, None)

        start_node = start_node or self.config.default_start
        self._vm = VirtualMachine(self, self.program)
        if not self._vm.set_node(start_node):
            return DialogueRun(self, None)
        return DialogueRun(self, self._vm)

    def stop(self) -> None:
        if self._vm is not None:
            self._vm.stop()

    @property
    def current_node(self) -> Optional[str]:
        if self._vm is None:
            return None
        return self._vm.current_node_name

    # -----------------------------
    # Introspection
    # -----------------------------

    @property
    def visited_node_names(self) -> List[str]:
        return list(self.visited_node_count)

    @visited_node_names.setter
    def visited_node_names(self, names: Iterable[str]) -> None:
        self.visited_node_count = {name: 1 for name in names}

    def visit_count(self, node_name: str) -> int:
        return self.visited_node_count.get(node_name, 0)

    @property
    def all_nodes(self) -> List[str]:
        if self.program is None:
            return []
        return list(self.program.nodes)

    def node_exists(self, node_name: str) -> bool:
        if self.program is None:
            self._error("Tried to call node_exists, but no nodes have been compiled!")
            return False
        if not self.program.nodes:
            self._debug("Called node_exists, but there are zero nodes. This may be an error.")
            return False
        return node_name in self.program.nodes

    def get_text_for_node(self, node_name: str) -> Optional[str]:
        """Source text of `node_name`, if it was preserved at compile time."""
        if not self._check_node_lookup(node_name):
            return None
        return self.program.get_text_for_node(node_name)

    def get_tags_for_node(self, node_name: str) -> Optional[List[str]]:
        if not self._check_node_lookup(node_name):
            return None
        return self.program.get_tags_for_node(node_name)

    def get_text_for_all_nodes(self) -> Dict[str, str]:
        texts = {}
        for name in self.all_nodes:
            text = self.program.get_text_for_node(name)
            if text is not None:
                texts[name] = text
        return texts

    def get_tags_for_all_nodes(self) -> Dict[str, List[str]]:
        tags = {}
        for name in self.all_nodes:
            node_tags = self.program.get_tags_for_node(name)
            if node_tags is not None:
                tags[name] = node_tags
        return tags

    def get_byte_code(self) -> str:
        if self.program is None:
            self._error("Cannot dump byte code: no program is loaded.")
            return ""
        return self.program.dump_code(self.library)

    def analyse(self, context: "Context") -> None:
        context.add_program_to_analysis(self.program)

    def _check_node_lookup(self, node_name: str) -> bool:
        if self.program is None or not self.program.nodes:
            self._error("No nodes are loaded!")
            return False
        if node_name not in self.program.nodes:
            self._error("No node named " + node_name)
            return False
        return True

    # Introspection may run before the host installs loggers
    def _debug(self, message: str) -> None:
        if self.log_debug_message is not None:
            self.log_debug_message(message)

    def _error(self, message: str) -> None:
        if self.log_error_message is not None:
            self.log_error_message(message)


def logging_callbacks(dialogue: Dialogue, logger: logging.Logger = None) -> Dialogue:
    """Route a dialogue's debug/error callbacks into a standard logger."""
    logger = logger or logging.getLogger("spool.dialogue")
    dialogue.log_debug_message = logger.debug
    dialogue.log_error_message = logger.error
    return dialogue

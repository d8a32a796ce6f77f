"""Command-line parameter registry and parser."""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass, field

from p4fusion import log


@dataclass
class _Parameter:
    required: bool
    help_text: str
    values: list[str] = field(default_factory=list)
    is_set: bool = False


class Arguments:
    """Named ``--name value`` parameters, with defaults and help text."""

    def __init__(self) -> None:
        self._parameters: dict[str, _Parameter] = {}

    def required_parameter(self, name: str, help_text: str) -> None:
        """Register a parameter that must be given."""
        self._parameters[name] = _Parameter(required=True, help_text=help_text)

    def optional_parameter(self, name: str, default_value: str, help_text: str) -> None:
        """Register a parameter with a default value."""
        self._parameters[name] = _Parameter(required=False, help_text=help_text, values=[default_value])

    def optional_parameter_list(self, name: str, help_text: str) -> None:
        """Register a parameter that may be given any number of times."""
        self._parameters[name] = _Parameter(required=False, help_text=help_text)

    def parse(self, argv: Sequence[str]) -> None:
        """Read ``name value`` pairs; ``argv`` excludes the program name.

        A trailing name without a value is ignored, and unknown names are
        reported and skipped.
        """
        for name, value in zip(argv[0::2], argv[1::2]):
            parameter = self._parameters.get(name)
            if parameter is None:
                log.warn(f"Unknown argument: {name}")
                continue
            parameter.values.append(value)
            parameter.is_set = True

    def is_valid(self) -> bool:
        """Return True when every required parameter was given."""
        return all(p.is_set for p in self._parameters.values() if p.required)

    def help(self) -> str:
        """Return the usage text, one entry per parameter, sorted by name."""
        text = "\n"
        for name, parameter in sorted(self._parameters.items()):
            text += name + " "
            if parameter.required:
                text += "\033[91m[Required]\033[0m"
            else:
                default = parameter.values[-1] if parameter.values else "empty"
                text += f"\033[93m[Optional, Default is {default}]\033[0m"
            text += "\n        " + parameter.help_text + "\n\n"
        return text

    def get(self, name: str) -> str:
        """Return the last value given for ``name``, or ``""``."""
        parameter = self._parameters.get(name)
        if parameter is None or not parameter.values:
            return ""
        return parameter.values[-1]

    def get_list(self, name: str) -> list[str]:
        """Return every value held for ``name``, defaults included."""
        parameter = self._parameters.get(name)
        return list(parameter.values) if parameter else []


def default_arguments() -> Arguments:
    """Return an ``Arguments`` with every parameter the converter accepts."""
    args = Arguments()
    args.required_parameter(
        "--path",
        "P4 depot path to convert to a Git repo. With '--branch', this is the base path for the branches.",
    )
    args.required_parameter(
        "--src",
        "Relative path where the Git repository should be created. It should be empty before the first run.",
    )
    args.required_parameter("--port", "Which P4PORT to use.")
    args.required_parameter("--user", "Which P4USER to use. The user must be logged in.")
    args.required_parameter("--client", "Name/path of the client workspace specification.")
    args.required_parameter(
        "--lookAhead",
        "How many CLs ahead, at most, to keep downloaded by the time one is committed.",
    )
    args.optional_parameter_list(
        "--branch",
        "A branch to migrate under the depot path; may be given more than once. With at least one branch "
        "and noMerge false, the Git history includes merges between branches. Use 'depot/path:git-alias' "
        "to give the Git name; a depot path containing ':' needs the alias.",
    )
    args.optional_parameter(
        "--noMerge",
        "false",
        "Do not create a Git merge when a Perforce branch integrates into another branch.",
    )
    args.optional_parameter(
        "--networkThreads",
        str(os.cpu_count() or 1),
        "Number of threads running network calls. Defaults to the number of logical CPUs.",
    )
    args.optional_parameter("--printBatch", "1", "The p4 print batch size.")
    args.optional_parameter(
        "--maxChanges",
        "-1",
        "Maximum number of changelists processed in one run. -1 means unlimited.",
    )
    args.optional_parameter("--retries", "10", "How many times a command is retried before giving up.")
    args.optional_parameter("--refresh", "100", "How many times a connection is reused before it is refreshed.")
    args.optional_parameter(
        "--fsyncEnable",
        "false",
        "Flush objects to permanent storage as they are written.",
    )
    args.optional_parameter("--includeBinaries", "false", "Keep binary files while downloading changelists.")
    args.optional_parameter("--flushRate", "1000", "Rate at which profiling data is flushed to disk.")
    args.optional_parameter("--noColor", "false", "Disable colored output.")
    args.optional_parameter(
        "--streamMappings",
        "false",
        "Use the mappings defined by the Perforce stream spec of the given stream.",
    )
    return args
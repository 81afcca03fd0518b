"""Shell-like command-line tokenizer.

Splits a command string into an argument list the way a POSIX shell would
for simple commands, without ever invoking a shell:

- whitespace separates words
- single quotes are fully literal
- double quotes allow backslash escapes and ``$NAME`` / ``${NAME}`` expansion
- an unquoted backslash copies the next character literally
- an unquoted ``~`` at the start of a word expands to the home directory

Adjacent quoted and unquoted fragments join into one argument, so ``a'b'c``
yields ``abc`` and ``''`` yields a single empty argument.
"""

from __future__ import annotations

import os
import re
from enum import Enum
from typing import Mapping

from loguru import logger

from shellpipe.config import Settings, get_settings
from shellpipe.errors import CommandSyntaxError

NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
# Word separators; other Unicode whitespace stays part of the word
WHITESPACE = frozenset(" \t\n\r\v\f")


class _State(Enum):
    UNQUOTED = "unquoted"
    SINGLE_QUOTE = "single_quote"
    DOUBLE_QUOTE = "double_quote"


class CommandTokenizer:
    """Three-state tokenizer over a single command string."""

    def __init__(
        self,
        settings: Settings | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize tokenizer.

        Args:
            settings: Configuration settings. If None, loads from environment.
            environ: Variables used for expansion. If None, ``os.environ`` is
                read at tokenization time.
        """
        self.settings = settings or get_settings()
        self.environ = environ

    def tokenize(self, command: str) -> list[str]:
        """Split ``command`` into arguments.

        Args:
            command: Command line such as ``grep -n "foo bar" ~/notes.txt``.

        Returns:
            Ordered list of arguments; empty if the command holds no words.

        Raises:
            CommandSyntaxError: On an unterminated quote or ``${...}``.
        """
        env = os.environ if self.environ is None else self.environ
        tokens: list[str] = []
        current: list[str] = []
        # A token can be open while still empty, e.g. after ''
        in_token = False
        at_word_start = True
        state = _State.UNQUOTED
        index = 0
        length = len(command)

        while index < length:
            char = command[index]

            if state is _State.UNQUOTED:
                if char in WHITESPACE:
                    if in_token:
                        tokens.append("".join(current))
                        current.clear()
                        in_token = False
                    at_word_start = True
                    index += 1
                    continue

                word_start = at_word_start
                in_token = True
                at_word_start = False

                if char == "'":
                    state = _State.SINGLE_QUOTE
                elif char == '"':
                    state = _State.DOUBLE_QUOTE
                elif char == "\\":
                    index = self._copy_escaped(command, index, current)
                    continue
                elif char == "$":
                    index = self._expand_variable(command, index, current, env)
                    continue
                elif char == "~" and word_start:
                    current.append(env.get(self.settings.home_env_var, "~"))
                else:
                    current.append(char)
                index += 1
                continue

            if state is _State.SINGLE_QUOTE:
                if char == "'":
                    state = _State.UNQUOTED
                else:
                    current.append(char)
                index += 1
                continue

            # Double quote
            if char == '"':
                state = _State.UNQUOTED
                index += 1
            elif char == "\\":
                index = self._copy_escaped(command, index, current)
            elif char == "$":
                index = self._expand_variable(command, index, current, env)
            else:
                current.append(char)
                index += 1

        if state is _State.SINGLE_QUOTE:
            raise CommandSyntaxError("Unclosed single quote in command", command)
        if state is _State.DOUBLE_QUOTE:
            raise CommandSyntaxError("Unclosed double quote in command", command)

        if in_token:
            tokens.append("".join(current))

        logger.debug("Tokenized {!r} into {}", command, tokens)
        return tokens

    @staticmethod
    def _copy_escaped(command: str, index: int, current: list[str]) -> int:
        """Copy the character after a backslash; a trailing backslash stays."""
        if index + 1 < len(command):
            current.append(command[index + 1])
            return index + 2
        current.append("\\")
        return index + 1

    @staticmethod
    def _expand_variable(
        command: str,
        index: int,
        current: list[str],
        env: Mapping[str, str],
    ) -> int:
        """Expand ``$NAME`` or ``${NAME}`` starting at ``index``.

        Returns:
            Index of the first character after the expansion.
        """
        if command.startswith("${", index):
            end = command.find("}", index + 2)
            if end == -1:
                raise CommandSyntaxError("Unclosed ${...} in command", command)
            current.append(env.get(command[index + 2 : end], ""))
            return end + 1

        match = NAME_RE.match(command, index + 1)
        if match is None:
            # Not a variable name, keep the dollar sign
            current.append("$")
            return index + 1
        current.append(env.get(match.group(), ""))
        return match.end()


def tokenize(command: str, settings: Settings | None = None) -> list[str]:
    """Tokenize a command string against the current process environment."""
    return CommandTokenizer(settings=settings).tokenize(command)

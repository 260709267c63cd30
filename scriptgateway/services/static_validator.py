# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/services/static_validator.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Pre-execution static scanner for untrusted scripts.

Each supported language has a denylist of dangerous API surface and a set of
"infinite loop" idioms. The checks are purely lexical: a loop idiom only
counts as unbounded when the script contains no escape token (``break``,
``return`` or ``exit``) anywhere. False positives and negatives are accepted;
the scanner is a cheap gate in front of the real sandbox, not a proof.

Examples:
    >>> validator = StaticValidator()
    >>> validator.validate("print('hi')", "python").valid
    True
    >>> validator.validate("   ", "python").issues
    ['Script is empty']
    >>> validator.validate("x <- 1", "cobol").issues
    ['Unsupported language: cobol']
    >>> validator.validate("sudo rm -rf /", "bash").issues
    ['Contains potentially unsafe operation: rm -rf', 'Contains potentially unsafe operation: sudo']
"""

# Standard
from dataclasses import dataclass
import re
from typing import Dict, List, Tuple

# First-Party
from scriptgateway.models import ScriptLanguage
from scriptgateway.schemas import ValidationResult
from scriptgateway.services.logging_service import LoggingService

logger = LoggingService().get_logger(__name__)

EMPTY_SCRIPT_ISSUE = "Script is empty"
UNSAFE_OPERATION_ISSUE = "Contains potentially unsafe operation: {token}"
INFINITE_LOOP_ISSUE = "Contains potential infinite loop"
LARGE_RANGE_ISSUE = "Contains very large range operation"

MAX_RANGE_LITERAL = 1_000_000

_RANGE_LITERAL_RE = re.compile(r"range\s*\(\s*(\d+)")


@dataclass(frozen=True)
class LanguageRules:
    """Lexical rules for one language."""

    denylist: Tuple[str, ...]
    loop_idioms: Tuple[str, ...]
    loop_escapes: Tuple[str, ...]


LANGUAGE_RULES: Dict[ScriptLanguage, LanguageRules] = {
    ScriptLanguage.PYTHON: LanguageRules(
        denylist=(
            "os.system",
            "subprocess.",
            "eval(",
            "exec(",
            "__import__",
            "importlib",
            "pickle.",
            "marshal.",
            "open(",
            "file(",
            "requests.",
            "urllib.",
            "socket.",
        ),
        loop_idioms=("while True", "while 1"),
        loop_escapes=("break", "return"),
    ),
    ScriptLanguage.R: LanguageRules(
        denylist=("system(", "shell(", "eval(parse", "source(", "install.packages(", "library(parallel)", "socket"),
        loop_idioms=("while(TRUE)", "while (TRUE)"),
        loop_escapes=("break", "return"),
    ),
    ScriptLanguage.JULIA: LanguageRules(
        denylist=("run(", "eval(", "include(", "import", "using Distributed", "open(", "download(", "connect("),
        loop_idioms=("while true", "while (true)"),
        loop_escapes=("break", "return"),
    ),
    ScriptLanguage.JAVASCRIPT: LanguageRules(
        denylist=("eval(", "Function(", "setTimeout(", "setInterval(", "require(", "process.", "window.", "document."),
        loop_idioms=("while(true)", "while (true)"),
        loop_escapes=("break", "return"),
    ),
    ScriptLanguage.BASH: LanguageRules(
        denylist=("rm -rf", "mkfs", "dd", "> /dev/", "| sh", "curl | bash", "wget | sh", "sudo"),
        loop_idioms=("while true", "while :"),
        loop_escapes=("break", "exit"),
    ),
}


class StaticValidator:
    """Per-language pattern scanner run before any resource is committed."""

    def __init__(self, rules: Dict[ScriptLanguage, LanguageRules] = None):
        """Initialize the validator.

        Args:
            rules: Optional replacement rule table, mainly for tests.
        """
        self._rules = dict(rules or LANGUAGE_RULES)

    def supported_languages(self) -> List[str]:
        """Return the language names this validator can scan.

        Returns:
            List[str]: Lower-case language names.
        """
        return [language.value for language in self._rules]

    def validate(self, code: str, language: str = ScriptLanguage.PYTHON.value) -> ValidationResult:
        """Scan source code and collect every issue found.

        Args:
            code: Script source text.
            language: Script language name (case-insensitive).

        Returns:
            ValidationResult: ``valid`` is True only when no issue was found.
        """
        issues: List[str] = []

        if not code or not code.strip():
            issues.append(EMPTY_SCRIPT_ISSUE)
            return ValidationResult(valid=False, issues=issues)

        language_name = str(language or "").lower()
        try:
            lang = ScriptLanguage(language_name)
            rules = self._rules[lang]
        except (ValueError, KeyError):
            issues.append(f"Unsupported language: {language}")
            return ValidationResult(valid=False, issues=issues)

        self._scan_denylist(code, rules, issues)
        self._scan_unbounded_loops(code, rules, issues)
        if lang is ScriptLanguage.PYTHON:
            self._scan_large_ranges(code, issues)

        if issues:
            logger.info(f"Static validation rejected {lang.value} script with {len(issues)} issue(s)")
        return ValidationResult(valid=not issues, issues=issues)

    @staticmethod
    def _scan_denylist(code: str, rules: LanguageRules, issues: List[str]) -> None:
        for token in rules.denylist:
            if token in code:
                issues.append(UNSAFE_OPERATION_ISSUE.format(token=token))

    @staticmethod
    def _scan_unbounded_loops(code: str, rules: LanguageRules, issues: List[str]) -> None:
        has_loop = any(idiom in code for idiom in rules.loop_idioms)
        has_escape = any(token in code for token in rules.loop_escapes)
        if has_loop and not has_escape:
            issues.append(INFINITE_LOOP_ISSUE)

    @staticmethod
    def _scan_large_ranges(code: str, issues: List[str]) -> None:
        for match in _RANGE_LITERAL_RE.finditer(code):
            if int(match.group(1)) > MAX_RANGE_LITERAL:
                issues.append(LARGE_RANGE_ISSUE)


def validate_script(code: str, language: str = ScriptLanguage.PYTHON.value) -> ValidationResult:
    """Validate a script with the default rule table.

    Args:
        code: Script source text.
        language: Script language name.

    Returns:
        ValidationResult: Scan outcome.
    """
    return StaticValidator().validate(code, language)

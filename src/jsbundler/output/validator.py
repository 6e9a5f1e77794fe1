"""
Output Validation

Checks the generated bundle before anything is written:

- syntax: compiled with `node` (vm.Script inside a stubbed browser context)
  when available, otherwise a token-level balance check
- heuristics: advisory warnings that never fail the build
"""

import json
import logging
import re
import shutil
import subprocess
from dataclasses import dataclass
from typing import List, Optional

from lark import Token

from ..frontend.lexer import (
    CLOSING,
    IDENT,
    OPENING,
    OTHER,
    PUNCT,
    TRIVIA_TYPES,
    UNTERMINATED_OPENERS,
    Lexer,
    is_ident,
    is_punct,
)
from ..shared.errors import ConfigError, OutputSyntaxError
from ..shared.source_location import SourceLocation
from ..utils.config import DEFAULT_MAX_CONSOLE_CALLS, NODE_CHECK_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

NODE_CHECK_SCRIPT = r"""
const vm = require('vm');
const fs = require('fs');
const code = fs.readFileSync(0, 'utf8');
const noop = function () {};
vm.createContext({
    window: {}, document: {}, navigator: {}, location: {}, console: console,
    setTimeout: noop, setInterval: noop, clearTimeout: noop, clearInterval: noop
});
try {
    new vm.Script(code, { filename: process.argv[1] || 'bundle.js' });
} catch (error) {
    const where = String(error.stack || '').split('\n')[0];
    process.stderr.write(JSON.stringify({ message: String(error.message), where: where }));
    process.exit(1);
}
"""

_WHERE_LINE_RE = re.compile(r":(\d+)$")


@dataclass
class SyntaxProblem:
    message: str
    line: int = 0
    column: int = 0


class NodeSyntaxChecker:
    """Compiles the bundle with Node's `vm.Script` in a child process."""
    name = "node"

    def __init__(self, node_path: str, timeout: float = NODE_CHECK_TIMEOUT_SECONDS):
        self.node_path = node_path
        self.timeout = timeout

    def check(self, code: str, filename: str) -> Optional[SyntaxProblem]:
        try:
            proc = subprocess.run(
                [self.node_path, "-e", NODE_CHECK_SCRIPT, filename],
                input=code,
                capture_output=True,
                text=True,
                encoding="utf-8",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return SyntaxProblem(f"node did not finish the syntax check within {self.timeout}s")
        if proc.returncode == 0:
            return None
        try:
            report = json.loads(proc.stderr)
        except ValueError:
            return SyntaxProblem(proc.stderr.strip() or f"node exited with status {proc.returncode}")
        match = _WHERE_LINE_RE.search(report.get("where", ""))
        return SyntaxProblem(report.get("message", "syntax error"), int(match.group(1)) if match else 0)


class BuiltinSyntaxChecker:
    """
    Token-level check: brackets outside literals must pair up and no string,
    template or block comment may run off the end of the file. Much weaker
    than a parser, but needs nothing installed.
    """
    name = "builtin"

    def __init__(self, lexer: Optional[Lexer] = None):
        self.lexer = lexer or Lexer()

    def check(self, code: str, filename: str) -> Optional[SyntaxProblem]:
        tokens = self.lexer.tokenize(code)
        stack: List[Token] = []
        previous: Optional[Token] = None
        for token in tokens:
            if token.type == OTHER and token.value in UNTERMINATED_OPENERS:
                kind = "template literal" if token.value == "`" else "string literal"
                return SyntaxProblem(f"unterminated {kind}", token.line, token.column)
            if (is_punct(token, "*") and is_punct(previous, "/")
                    and previous.end_pos == token.start_pos
                    and "*/" not in code[token.end_pos:]):
                return SyntaxProblem("unterminated block comment", previous.line, previous.column)
            if token.type == PUNCT and token.value in OPENING:
                stack.append(token)
            elif token.type == PUNCT and token.value in CLOSING:
                if not stack:
                    return SyntaxProblem(f"unexpected '{token.value}'", token.line, token.column)
                opener = stack.pop()
                if OPENING[opener.value] != token.value:
                    return SyntaxProblem(
                        f"'{token.value}' does not match '{opener.value}' opened at line {opener.line}",
                        token.line,
                        token.column,
                    )
            previous = token
        if stack:
            opener = stack[-1]
            return SyntaxProblem(f"unclosed '{opener.value}'", opener.line, opener.column)
        return None


def select_syntax_checker(mode: str, lexer: Optional[Lexer] = None):
    """
    Pick the backend for `syntax_check`: auto, node, builtin or off.

    Raises:
        ConfigError: `node` was requested but is not on PATH
    """
    if mode == "off":
        return None
    node = shutil.which("node")
    if mode == "node":
        if node is None:
            raise ConfigError(
                "syntax_check is 'node' but no node executable is on PATH",
                help="install Node.js or use syntax_check: auto",
            )
        return NodeSyntaxChecker(node)
    if mode == "auto" and node is not None:
        return NodeSyntaxChecker(node)
    return BuiltinSyntaxChecker(lexer)


class OutputValidator:
    """Syntax check plus token-aware heuristic warnings for a bundle."""

    def __init__(
        self,
        syntax_check: str = "auto",
        max_console_calls: int = DEFAULT_MAX_CONSOLE_CALLS,
        lexer: Optional[Lexer] = None,
    ):
        self.lexer = lexer or Lexer()
        self.checker = select_syntax_checker(syntax_check, self.lexer)
        self.max_console_calls = max_console_calls

    @property
    def backend(self) -> str:
        return self.checker.name if self.checker is not None else "off"

    def check_syntax(self, code: str, filename: str) -> None:
        """
        Raises:
            OutputSyntaxError: the code does not compile
        """
        if self.checker is None:
            return
        problem = self.checker.check(code, filename)
        if problem is None:
            logger.debug(f"Syntax check ({self.backend}) passed for {filename}")
            return
        location = SourceLocation(filename, problem.line, problem.column) if problem.line else None
        raise OutputSyntaxError(
            f"generated bundle does not compile: {problem.message}",
            location,
            help=f"checked with the {self.backend} backend",
        )

    def heuristic_warnings(self, code: str) -> List[str]:
        tokens = [t for t in self.lexer.tokenize(code) if t.type not in TRIVIA_TYPES]
        warnings: List[str] = []

        punct = [t.value for t in tokens if t.type == PUNCT]
        open_braces, close_braces = punct.count("{"), punct.count("}")
        open_parens, close_parens = punct.count("("), punct.count(")")
        if open_braces != close_braces:
            warnings.append(f"brace mismatch: {open_braces} opening vs {close_braces} closing")
        if open_parens != close_parens:
            warnings.append(f"parenthesis mismatch: {open_parens} opening vs {close_parens} closing")

        leftovers = set()
        console_logs = 0
        names = set()
        for i, token in enumerate(tokens):
            if token.type != IDENT:
                continue
            names.add(token.value)
            prev = tokens[i - 1] if i > 0 else None
            nxt = tokens[i + 1] if i + 1 < len(tokens) else None
            member_access = is_punct(prev, ".") or is_punct(prev, "?.")
            if token.value in ("import", "export") and not member_access:
                if not (is_punct(nxt, "(") or is_punct(nxt, ".") or is_punct(nxt, ":")):
                    leftovers.add(token.value)
            if (token.value == "console" and is_punct(nxt, ".")
                    and i + 2 < len(tokens) and is_ident(tokens[i + 2], "log")):
                console_logs += 1

        for keyword in sorted(leftovers):
            warnings.append(f"'{keyword}' statement found in output; it may not have been transformed")
        if console_logs > self.max_console_calls:
            warnings.append(
                f"{console_logs} console.log calls found (limit {self.max_console_calls}); "
                "consider removing them from production builds"
            )
        if "setInterval" in names and "clearInterval" not in names:
            warnings.append("setInterval is used without clearInterval; intervals may leak")

        for warning in warnings:
            logger.warning(warning)
        return warnings

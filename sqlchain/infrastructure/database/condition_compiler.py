"""
Condition Compiler - Turns WHERE/JOIN/SET/VALUES arguments into SQL text.

Each argument entry maps a key (a column, or the ``raw`` sentinel) to a
plain value or a configuration mapping. Operators are inferred from the
value when not given (``IS`` for None, ``IN`` for sequences, ``=``
otherwise), values are sanitized and then rendered through the driver's
``prepare`` so numbers stay unquoted and text is quoted and escaped.

Configuration keys understood in WHERE entries::

    value, min, max              bound value(s)
    operator                     explicit operator, uppercased verbatim
    joint                        AND (default) or OR
    key, key_b                   raw lower/upper BETWEEN bound; a ``key``
                                 outside BETWEEN leaves the value unsanitized
    force_string                 always quote
    sanitize_callback(2)         selector for the first/second bound
    wildcard                     LIKE wildcard token for this entry only

JOIN arguments use ``key``/``key_a`` for the left-hand column, ``key_b``
for a raw right-hand side and ``key_c`` for a raw second BETWEEN bound.
"""

# Standard library imports
import logging
import re
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

# Local imports
from sqlchain.application.interfaces.driver import IDatabaseDriver
from sqlchain.domain.exceptions import InvalidArgumentError, MissingBoundError
from sqlchain.domain.value_objects.condition import Condition, Joint
from sqlchain.domain.value_objects.sql_value import SqlValue, ValueKind
from sqlchain.infrastructure.security.input_sanitizer import InputSanitizer, SanitizeCallback

logger = logging.getLogger(__name__)

RAW_KEY = "raw"
DEFAULT_WILDCARD = "{%}"

_QUOTED_NULL = re.compile(r"'(not null|null)'", re.IGNORECASE)

Arguments = Mapping[str, Any] | Iterable[tuple[str, Any]]


def iter_arguments(args: Arguments | None) -> Iterator[tuple[str, Any]]:
    """Iterate ``(key, value)`` entries of a mapping or a sequence of pairs."""
    if not args:
        return iter(())
    if isinstance(args, Mapping):
        return iter(args.items())
    return iter(args)


class ConditionCompiler:
    """
    Compiles argument entries into conditions and rendered values.

    The compiler shares the builder's ``options`` mapping; its ``wildcard``
    entry is overridden for the duration of one entry and then restored.
    """

    def __init__(
        self,
        driver: IDatabaseDriver,
        options: dict[str, str] | None = None,
        auto_sanitize: bool = True,
    ) -> None:
        """
        Initialize the compiler.

        Args:
            driver: Driver providing ``prepare`` and ``escape_like``
            options: Mutable render options shared with the builder
            auto_sanitize: Default sanitize selector when an entry gives none
        """
        self.driver = driver
        self.options = (
            options
            if options is not None
            else {"wildcard": DEFAULT_WILDCARD, "default_wildcard": DEFAULT_WILDCARD}
        )
        self.default_sanitize: SanitizeCallback = True if auto_sanitize else False

    # ------------------------------------------------------------------
    # LIKE helpers
    # ------------------------------------------------------------------

    def esc_like(self, value: Any) -> str:
        """Escape a LIKE pattern, turning each wildcard token into ``%``."""
        wildcard = self.options.get("wildcard") or ""
        text = "" if value is None else str(value)
        if not wildcard:
            return self.driver.escape_like(text)
        return "%".join(self.driver.escape_like(part) for part in text.split(wildcard))

    def esc_like_wild_value(self, value: Any) -> str:
        return "%" + self.esc_like(value)

    def esc_like_value_wild(self, value: Any) -> str:
        return self.esc_like(value) + "%"

    def esc_like_wild_wild(self, value: Any) -> str:
        return "%" + self.esc_like(value) + "%"

    @property
    def like_callbacks(self) -> dict[str, Callable[[Any], Any]]:
        """Named sanitizers that depend on this compiler's wildcard."""
        return {
            "esc_like": self.esc_like,
            "esc_like_wild_value": self.esc_like_wild_value,
            "esc_like_value_wild": self.esc_like_value_wild,
            "esc_like_wild_wild": self.esc_like_wild_wild,
        }

    @contextmanager
    def scoped_wildcard(self, config: Mapping[str, Any] | None) -> Iterator[None]:
        """Override the wildcard for one entry when its config carries one."""
        token = config.get("wildcard") if config else None
        if not token or not str(token).strip():
            yield
            return

        self.options["wildcard"] = str(token).strip()
        try:
            yield
        finally:
            self.options["wildcard"] = self.options.get("default_wildcard", DEFAULT_WILDCARD)

    # ------------------------------------------------------------------
    # Value rendering
    # ------------------------------------------------------------------

    def sanitize(self, callback: SanitizeCallback, value: Any) -> Any:
        return InputSanitizer.sanitize_value(callback, value, self.like_callbacks)

    def render_value(self, value: SqlValue) -> str:
        """
        Render a tagged value as SQL.

        Args:
            value: Tagged value

        Returns:
            SQL text: integers and floats unquoted, text quoted by the
            driver, NULL bare, sequences as a parenthesized list

        Raises:
            InvalidArgumentError: If a sequence is empty
            TypeError: If the kind is unknown
        """
        if value.kind is ValueKind.NULL:
            return "NULL"
        if value.kind is ValueKind.INTEGER:
            return self.driver.prepare("%d", value.payload)
        if value.kind is ValueKind.FLOAT:
            return self.driver.prepare("%f", value.payload)
        if value.kind is ValueKind.TEXT:
            return self.driver.prepare("%s", value.payload)
        if value.kind is ValueKind.RAW:
            return value.payload
        if value.kind is ValueKind.SEQUENCE:
            if not value.payload:
                raise InvalidArgumentError(
                    "Cannot render an empty list", InvalidArgumentError.EMPTY_LIST, []
                )
            return "(" + ",".join(self.render_value(item) for item in value.payload) + ")"
        raise TypeError(f"Unsupported value kind: {value.kind!r}")

    def render_operand(self, value: Any, force_string: bool = False) -> str:
        """Render a sanitized scalar or sequence in operand position."""
        tagged = SqlValue.infer(value, force_string=force_string)
        if tagged.is_null:
            return "NULL"
        return self.render_value(tagged)

    @staticmethod
    def build_statement(tokens: Iterable[Any]) -> str:
        """Join statement tokens, unquoting quoted ``NULL``/``NOT NULL`` literals."""
        statement = " ".join(str(token) for token in tokens)
        return _QUOTED_NULL.sub(lambda match: match.group(1), statement)

    @staticmethod
    def determine_operator(config: Mapping[str, Any] | None, value: Any) -> str:
        """Explicit operator, else IS for None, IN for sequences, = otherwise."""
        if config and config.get("operator"):
            return str(config["operator"]).strip().upper()
        if value is None:
            return "IS"
        if isinstance(value, SqlValue):
            if value.is_null:
                return "IS"
            return "IN" if value.is_sequence else "="
        if isinstance(value, (list, tuple, set, frozenset)):
            return "IN"
        return "="

    # ------------------------------------------------------------------
    # WHERE
    # ------------------------------------------------------------------

    def compile_where(self, args: Arguments | None) -> list[Condition]:
        """
        Compile WHERE arguments.

        Args:
            args: Mapping or sequence of ``(key, value)`` pairs

        Returns:
            One condition per entry, in input order

        Raises:
            MissingBoundError: If a BETWEEN entry lacks its upper bound
            InvalidArgumentError: If a joint or sanitizer is invalid, or a
                list value is empty
        """
        return [self.compile_where_entry(key, value) for key, value in iter_arguments(args)]

    def compile_where_entry(self, key: str, value: Any) -> Condition:
        config = value if isinstance(value, Mapping) else None

        with self.scoped_wildcard(config):
            joint = Joint.parse(config.get("joint") if config else None)

            if key == RAW_KEY:
                raw_value = config.get("value") if config else value
                return Condition(joint, self.build_statement([raw_value]))

            arg_value = value
            if config is not None:
                arg_value = config.get("min", config.get("value"))

            callback = config.get("sanitize_callback", self.default_sanitize) if config else self.default_sanitize
            has_override = config is not None and "key" in config
            if callback and not has_override:
                arg_value = self.sanitize(callback, arg_value)

            force_string = bool(config.get("force_string")) if config else False
            operator = self.determine_operator(config, arg_value)
            if has_override and "BETWEEN" in operator:
                rendered = str(config["key"])
            else:
                rendered = self.render_operand(arg_value, force_string)

            tokens = [key, operator, rendered]

            if "BETWEEN" in operator:
                tokens.extend(self._upper_bound(key, config, callback, force_string, "key_b", MissingBoundError.WHERE))

            return Condition(joint, self.build_statement(tokens))

    def _upper_bound(
        self,
        key: str,
        config: Mapping[str, Any] | None,
        callback: SanitizeCallback,
        force_string: bool,
        raw_key: str,
        code: int,
    ) -> list[str]:
        """Render ``AND <bound>`` for BETWEEN, from ``max`` or a raw override."""
        if not config or ("max" not in config and raw_key not in config):
            raise MissingBoundError(key, ("max", raw_key), code)

        if raw_key in config:
            return ["AND", str(config[raw_key])]

        bound = config["max"]
        callback = config.get("sanitize_callback2", callback)
        if callback:
            bound = self.sanitize(callback, bound)
        return ["AND", self.render_operand(bound, force_string)]

    # ------------------------------------------------------------------
    # JOIN
    # ------------------------------------------------------------------

    def compile_join(self, args: Iterable[Mapping[str, Any]] | None) -> list[Condition]:
        """
        Compile JOIN ON arguments.

        Args:
            args: Sequence of argument mappings

        Returns:
            One condition per argument

        Raises:
            InvalidArgumentError: If an argument is not a mapping
            MissingBoundError: If a BETWEEN argument lacks its upper bound
        """
        conditions = []
        for argument in args or ():
            if not isinstance(argument, Mapping):
                raise InvalidArgumentError(
                    f"Join arguments must be mappings, got {type(argument).__name__}",
                    argument=argument,
                )
            conditions.append(self.compile_join_entry(argument))
        return conditions

    def compile_join_entry(self, argument: Mapping[str, Any]) -> Condition:
        with self.scoped_wildcard(argument):
            joint = Joint.parse(argument.get("joint"))

            if RAW_KEY in argument:
                return Condition(joint, self.build_statement([argument[RAW_KEY]]))

            arg_value = argument.get("min", argument.get("value"))
            callback = argument.get("sanitize_callback", self.default_sanitize)
            if callback and "key_b" not in argument:
                arg_value = self.sanitize(callback, arg_value)

            key = argument.get("key_a") or argument.get("key")
            if not key:
                raise InvalidArgumentError(
                    'Join arguments need a "key" or "key_a" column', argument=dict(argument)
                )

            force_string = bool(argument.get("force_string"))
            if argument.get("operator"):
                operator = str(argument["operator"]).strip().upper()
            else:
                operator = "IS" if arg_value is None and "key_b" not in argument else "="

            if "key_b" in argument:
                rendered = str(argument["key_b"])
            else:
                rendered = self.render_operand(arg_value, force_string)

            tokens = [key, operator, rendered]

            if "BETWEEN" in operator:
                tokens.extend(self._upper_bound(key, argument, callback, force_string, "key_c", MissingBoundError.JOIN))

            return Condition(joint, self.build_statement(tokens))

    # ------------------------------------------------------------------
    # SET / VALUES / keywords
    # ------------------------------------------------------------------

    def compile_assignment_value(self, key: str, value: Any) -> str:
        """
        Render a value destined for SET or VALUES.

        A config ``raw`` entry is used verbatim. Sequences are stored as one
        quoted comma-joined string. Text spelling ``null`` becomes SQL NULL.
        """
        config = value if isinstance(value, Mapping) else None

        if config is not None and RAW_KEY in config:
            return str(config[RAW_KEY])

        arg_value = config.get("value") if config is not None else value
        callback = config.get("sanitize_callback", self.default_sanitize) if config else self.default_sanitize
        if callback and key != RAW_KEY:
            arg_value = self.sanitize(callback, arg_value)

        force_string = bool(config.get("force_string")) if config else False
        tagged = SqlValue.infer(arg_value, force_string=force_string)

        if tagged.is_sequence:
            joined = ",".join("" if item.payload is None else str(item.payload) for item in tagged.payload)
            return self.driver.prepare("%s", joined)
        if tagged.is_null:
            return "NULL"
        if tagged.kind is ValueKind.TEXT and tagged.payload.strip().lower() == "null":
            return "NULL"
        return self.render_value(tagged)

    def compile_keywords(self, keywords: str | None, columns: Iterable[str], separator: str = " ") -> list[Condition]:
        """
        Compile a keyword search into one AND-joined condition per keyword.

        Each condition ORs ``<column> LIKE '%keyword%'`` across the columns.
        """
        columns = list(columns or ())
        if not keywords or not columns:
            return []

        conditions = []
        for keyword in str(keywords).split(separator):
            pattern = "%" + str(self.sanitize(True, keyword)) + "%"
            literal = self.driver.prepare("%s", pattern)
            text = "(" + " OR ".join(f"{column} LIKE {literal}" for column in columns) + ")"
            conditions.append(Condition(Joint.AND, text))
        return conditions

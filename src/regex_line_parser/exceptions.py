"""
Exception hierarchy for the regex line parser.
"""


class RegexParserError(Exception):
    """Base exception for all regex line parser errors."""


class ConfigError(RegexParserError, ValueError):
    """Table configuration is invalid and the parser cannot be initialized."""


class StructuralError(RegexParserError):
    """The compiled parse plan disagrees with the declared columns.

    Raised on every deserialize call until the plan is rebuilt.
    """

    def __init__(self, group_count: int, column_count: int) -> None:
        self.group_count = group_count
        self.column_count = column_count
        super().__init__(
            f"group count mismatch: pattern has {group_count} capture group(s) "
            f"but {column_count} column(s) are declared"
        )


class UnsupportedOperation(RegexParserError, NotImplementedError):
    """Operation is not supported by the regex line parser."""

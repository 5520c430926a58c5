from __future__ import annotations


class TagStreamError(Exception):
    """Base class for errors raised while reading or writing a tag stream."""

    def __init__(self, message: str, *, line_number: int | None = None, code: int | None = None) -> None:
        self.message = message
        self.line_number = line_number
        self.code = code
        super().__init__(self._format())

    def _format(self) -> str:
        parts = [self.message]
        if self.code is not None:
            parts.append(f"group code {self.code}")
        if self.line_number is not None:
            parts.append(f"line {self.line_number}")
        if len(parts) == 1:
            return self.message
        return f"{parts[0]} ({', '.join(parts[1:])})"


class IoFailure(TagStreamError):
    pass


class MalformedCode(TagStreamError):
    pass


class UnexpectedEof(TagStreamError):
    pass


class ParseError(TagStreamError):
    pass


class UnknownTag(TagStreamError):
    pass


class UnexpectedRecordKind(TagStreamError):
    pass


class ChainNotTerminated(TagStreamError):
    pass


class ValidationFailed(TagStreamError):
    def __init__(self, kind: str, problems: list[str], *, handle: int | None = None) -> None:
        self.kind = kind
        self.problems = list(problems)
        self.handle = handle
        label = kind if handle is None else f"{kind} {handle:X}"
        super().__init__(f"{label}: " + "; ".join(self.problems))


class SchemaError(ValueError):
    pass

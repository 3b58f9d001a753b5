"""
Output validator: decide whether a probe's return value is displayable.

Rules, in order:

1. the value must be a dict                      -> else NonObjectReturn
2. ``lines`` must be present and a list/tuple    -> else MissingLines
3. every item must match exactly one LineItem    -> else UnknownLineType
   variant (text, progress, badge)

A single bad item rejects the whole output; item order is preserved.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class _LineBase(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore", frozen=True)

    label: str
    color: str | None = None


class TextLine(_LineBase):
    type: Literal["text"] = "text"
    value: str


class ProgressLine(_LineBase):
    type: Literal["progress"] = "progress"
    value: float = Field(allow_inf_nan=False)
    max: float = Field(allow_inf_nan=False)
    unit: Literal["percent", "dollars"] | None = None


class BadgeLine(_LineBase):
    type: Literal["badge"] = "badge"
    text: str


LineItem = Annotated[TextLine | ProgressLine | BadgeLine, Field(discriminator="type")]

LINE_VARIANTS: dict[str, type[_LineBase]] = {
    "text": TextLine,
    "progress": ProgressLine,
    "badge": BadgeLine,
}


class Output(BaseModel):
    model_config = ConfigDict(frozen=True)

    lines: list[LineItem]


class ValidationReason(str, Enum):
    NON_OBJECT_RETURN = "NonObjectReturn"
    MISSING_LINES = "MissingLines"
    UNKNOWN_LINE_TYPE = "UnknownLineType"


@dataclass(frozen=True)
class ValidationFailure:
    reason: ValidationReason
    detail: str


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    msg = err.get("msg", "invalid value")
    return f"{loc}: {msg}" if loc else msg


def _validate_line(index: int, item: Any) -> _LineBase | ValidationFailure:
    if not isinstance(item, dict):
        return ValidationFailure(
            ValidationReason.UNKNOWN_LINE_TYPE,
            f"lines[{index}] is {type(item).__name__}, expected an object",
        )
    declared = item.get("type")
    model = LINE_VARIANTS.get(declared) if isinstance(declared, str) else None
    if model is None:
        detail = str(declared) if declared is not None else f"lines[{index}] has no type"
        return ValidationFailure(ValidationReason.UNKNOWN_LINE_TYPE, detail)
    try:
        return model.model_validate(item)
    except ValidationError as e:
        return ValidationFailure(
            ValidationReason.UNKNOWN_LINE_TYPE,
            f"{declared} (lines[{index}] {_first_error(e)})",
        )


def validate_output(result: Any) -> Output | ValidationFailure:
    """Return a validated Output, or the first ValidationFailure found."""
    if not isinstance(result, dict):
        return ValidationFailure(
            ValidationReason.NON_OBJECT_RETURN,
            f"probe returned {type(result).__name__}, expected an object",
        )
    if "lines" not in result:
        return ValidationFailure(ValidationReason.MISSING_LINES, "output has no 'lines'")
    raw_lines = result["lines"]
    if not isinstance(raw_lines, list | tuple):
        return ValidationFailure(
            ValidationReason.MISSING_LINES,
            f"'lines' is {type(raw_lines).__name__}, expected a list",
        )

    lines: list[_LineBase] = []
    for index, item in enumerate(raw_lines):
        checked = _validate_line(index, item)
        if isinstance(checked, ValidationFailure):
            return checked
        lines.append(checked)
    return Output(lines=lines)

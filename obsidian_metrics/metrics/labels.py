"""Label set canonicalization and escaping.

A label assignment is a plain ``{name: value}`` mapping. Two assignments are
the same time series exactly when their canonical keys are equal, regardless
of the order the caller built the mapping in.
"""

from collections.abc import Mapping

from obsidian_metrics.exceptions import LabelMismatchException

_KEY_ESCAPES = str.maketrans({"\\": "\\\\", "=": "\\=", ",": "\\,"})
_VALUE_ESCAPES = str.maketrans({"\\": "\\\\", '"': '\\"', "\n": "\\n"})
_HELP_ESCAPES = str.maketrans({"\\": "\\\\", "\n": "\\n"})

EMPTY_KEY = ""


def canonical_key(assignment: Mapping[str, str]) -> str:
    """Build the lookup key for a label assignment.

    Pairs are sorted by label name and joined as ``name=value`` with ``,``.
    ``\\``, ``=`` and ``,`` inside names and values are backslash-escaped so
    that no two distinct assignments share a key.
    """
    if not assignment:
        return EMPTY_KEY
    return ",".join(
        f"{name.translate(_KEY_ESCAPES)}={str(assignment[name]).translate(_KEY_ESCAPES)}"
        for name in sorted(assignment)
    )


def validate_labels(
    metric_name: str,
    label_names: tuple[str, ...],
    assignment: Mapping[str, str] | None,
) -> tuple[str, ...]:
    """Check an assignment against a family's declared label names.

    Returns:
        The label values ordered as the family declared its label names.

    Raises:
        LabelMismatchException: If the assignment names differ from the
            declared names (unknown name, missing name or wrong count).
    """
    assignment = assignment or {}
    if len(assignment) != len(label_names) or any(
        name not in assignment for name in label_names
    ):
        raise LabelMismatchException(
            metric_name, label_names, tuple(sorted(assignment))
        )
    return tuple(str(assignment[name]) for name in label_names)


def escape_label_value(value: str) -> str:
    """Escape a label value for the text exposition format."""
    return value.translate(_VALUE_ESCAPES)


def escape_help(text: str) -> str:
    """Escape HELP text for the text exposition format."""
    return text.translate(_HELP_ESCAPES)

from typing import List

from .schemas import ValidationIssue, Severity


def validate(text: str) -> List[ValidationIssue]:
    """Line-local lint run on every text change, independent of parsing.

    Only two checks, both blocking:
    - a literal `::` anywhere on a line
    - an odd number of `"` characters on a line
    """
    issues = []
    for index, line in enumerate(text.split("\n")):
        if "::" in line:
            issues.append(ValidationIssue(
                line=index + 1,
                column=line.index("::"),
                message="Invalid syntax: double colon",
                severity=Severity.ERROR,
            ))

        if line.count('"') % 2 != 0:
            issues.append(ValidationIssue(
                line=index + 1,
                column=line.rindex('"'),
                message="Unmatched quote",
                severity=Severity.ERROR,
            ))
    return issues


def blocking(issues: List[ValidationIssue]) -> List[ValidationIssue]:
    return [i for i in issues if i.severity == Severity.ERROR]

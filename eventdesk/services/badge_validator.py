"""
Badge pre-flight checks
Looks at a badge template and the registrations it will be printed for and
reports problems before anyone sends a batch to the printer.
"""

from typing import Optional

from .placeholders import find_placeholders

MAX_EXAMPLES = 3


def _issue(kind: str, field: str, message: str, details: str = "") -> dict:
    return {"type": kind, "field": field, "message": message, "details": details}


def _blank(value: Optional[str]) -> bool:
    return not value or not value.strip()


def empty_stats() -> dict:
    return {
        "totalRegistrations": 0,
        "registrationsWithIssues": 0,
        "missingNames": 0,
        "missingInstitutions": 0,
        "missingPhones": 0,
        "missingEmails": 0,
        "missingAddons": 0,
        "placeholdersUsed": [],
    }


def template_elements(template) -> list[dict]:
    data = template.template_data if template is not None else None
    if not isinstance(data, dict):
        return []
    return data.get("elements") or []


def validate_badge_run(template, registrations: list) -> dict:
    """
    Returns {valid, errors, warnings, stats}.

    Errors block generation (no template, no elements, no registrations,
    attendees without names). Warnings cover optional data that a template
    placeholder will render empty; "info" entries never count as issues.
    """
    errors: list[dict] = []
    warnings: list[dict] = []
    stats = empty_stats()

    if template is None:
        errors.append(_issue("error", "template", "No template selected", "Please select a badge template"))
        return {"valid": False, "errors": errors, "warnings": warnings, "stats": stats}

    elements = template_elements(template)
    if not elements:
        errors.append(
            _issue(
                "error",
                "template",
                "Template has no design elements",
                "Add text, QR codes, or images to your badge design",
            )
        )

    if not any(e.get("type") == "text" and "{{name}}" in (e.get("content") or "") for e in elements):
        warnings.append(
            _issue(
                "warning",
                "template",
                "Template missing name placeholder",
                "Consider adding {{name}} to display attendee names",
            )
        )

    if not any(e.get("type") == "qr_code" for e in elements):
        warnings.append(
            _issue("warning", "template", "Template has no QR code", "QR codes enable quick check-in scanning")
        )

    used: set[str] = set()
    for element in elements:
        used |= find_placeholders(element.get("content"))
    stats["placeholdersUsed"] = sorted(used)

    if not registrations:
        errors.append(
            _issue(
                "error",
                "registrations",
                "No registrations found",
                "Cannot generate badges without registrations",
            )
        )
        return {"valid": False, "errors": errors, "warnings": warnings, "stats": stats}

    stats["totalRegistrations"] = len(registrations)
    name_examples: list[str] = []

    for reg in registrations:
        has_issue = False

        if _blank(reg.attendee_name):
            stats["missingNames"] += 1
            has_issue = True
            if len(name_examples) < MAX_EXAMPLES:
                name_examples.append(f"{reg.registration_number}: Missing name")

        if "institution" in used and _blank(reg.attendee_institution):
            stats["missingInstitutions"] += 1
            has_issue = True

        if "phone" in used and _blank(reg.attendee_phone):
            stats["missingPhones"] += 1
            has_issue = True

        if "email" in used and _blank(reg.attendee_email):
            stats["missingEmails"] += 1
            has_issue = True

        if "addons" in used and not reg.addons:
            stats["missingAddons"] += 1

        if has_issue:
            stats["registrationsWithIssues"] += 1

    if stats["missingNames"]:
        details = ", ".join(name_examples)
        if stats["missingNames"] > MAX_EXAMPLES:
            details += f" and {stats['missingNames'] - MAX_EXAMPLES} more..."
        errors.append(
            _issue(
                "error",
                "registrations",
                f"{stats['missingNames']} registration(s) missing attendee name",
                details,
            )
        )

    for key, label in (
        ("missingInstitutions", "institution"),
        ("missingPhones", "phone number"),
        ("missingEmails", "email"),
    ):
        if stats[key]:
            warnings.append(
                _issue(
                    "warning",
                    "registrations",
                    f"{stats[key]} registration(s) missing {label}",
                    f"These badges will show empty {label} field",
                )
            )

    if stats["missingAddons"]:
        warnings.append(
            _issue(
                "info",
                "registrations",
                f"{stats['missingAddons']} registration(s) have no addons",
                "These badges will show empty addons field",
            )
        )

    return {"valid": not errors, "errors": errors, "warnings": warnings, "stats": stats}

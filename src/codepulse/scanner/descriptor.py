"""One-line module descriptions derived from exported symbols."""

from __future__ import annotations

import re

from codepulse.core.models import Category

MAX_NAMED_EXPORTS = 3

_NAMED_EXPORT_PATTERNS = (
    re.compile(
        r"^export[ \t]+(?:declare[ \t]+)?(?:async[ \t]+)?"
        r"(?:const|let|var|function\*?|class|interface|type|enum|abstract[ \t]+class)"
        r"[ \t]+([A-Za-z_$][\w$]*)",
        re.MULTILINE,
    ),
    # Python: public top-level definitions.
    re.compile(r"^(?:async[ \t]+)?def[ \t]+([A-Za-z]\w*)|^class[ \t]+([A-Za-z]\w*)", re.MULTILINE),
)

_DEFAULT_EXPORT = re.compile(
    r"^export[ \t]+default[ \t]+(?:async[ \t]+)?(?:function\*?[ \t]+|class[ \t]+)?([A-Za-z_$][\w$]*)",
    re.MULTILINE,
)

CATEGORY_DESCRIPTIONS = {
    Category.CORE: "Core engine module",
    Category.DOMAIN_A: "Primary domain adapter module",
    Category.DOMAIN_B: "Secondary domain adapter module",
    Category.UI: "User interface component",
    Category.UTILITY: "Shared utility module",
    Category.TYPE_DEFS: "Type definitions",
    Category.HOOKS: "Stateful hook module",
    Category.STORES: "State store module",
    Category.PAGES: "Page-level view",
}


def named_exports(text: str) -> list[str]:
    """All named exports in source order, without duplicates."""
    found: list[tuple[int, str]] = []
    for rx in _NAMED_EXPORT_PATTERNS:
        for match in rx.finditer(text):
            name = next(g for g in match.groups() if g)
            found.append((match.start(), name))
    names: list[str] = []
    for _, name in sorted(found):
        if name not in names:
            names.append(name)
    return names


def describe(text: str, category: Category) -> str:
    """Describe a module by up to three exports, then its default export, then its category."""
    names = named_exports(text)
    if names:
        shown = ", ".join(names[:MAX_NAMED_EXPORTS])
        extra = len(names) - MAX_NAMED_EXPORTS
        if extra > 0:
            return f"Exports {shown} +{extra} more"
        return f"Exports {shown}"

    default = _DEFAULT_EXPORT.search(text)
    if default:
        return f"Default export {default.group(1)}"

    return CATEGORY_DESCRIPTIONS[category]

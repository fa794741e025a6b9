"""Random-effect term extraction from lme4-style formulas.

Mixed-model formulas written in the lme4 convention mark each
random-effect term with a bar inside parentheses::

    y ~ x1 + x2 + (1 | subj)                # random intercept per subj
    y ~ x1 + (1 + x1 | subj) + (1 | item)   # crossed effects
    y ~ x1 + (1 | school/class)             # nested: school, school:class
    y ~ x1 + (x1 || subj)                   # uncorrelated slopes

Only the **grouping variables** (right of the bar) matter for block
resampling, so that is all this module extracts; everything else about
the formula is left to the model-fitting library.  Nested (``a/b``)
and interaction (``a:b``) grouping expressions contribute each variable
name once, in order of first appearance.
"""

from __future__ import annotations


def _split_top_level(text: str, sep: str) -> list[str]:
    """Split *text* on *sep* characters that are not inside parentheses."""
    parts: list[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(text):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == sep and depth == 0:
            parts.append(text[start:i])
            start = i + 1
    parts.append(text[start:])
    return parts


def _parse_bar_term(term: str) -> tuple[str, str] | None:
    """Return ``(lhs, grouping)`` if *term* is ``( lhs | grouping )``."""
    stripped = term.strip()
    if not (stripped.startswith("(") and stripped.endswith(")")):
        return None
    inner = stripped[1:-1]
    pieces = _split_top_level(inner, "|")
    if len(pieces) == 2:
        lhs, grouping = pieces
    elif len(pieces) == 3 and pieces[1] == "":
        # Double bar: (x || g)
        lhs, grouping = pieces[0], pieces[2]
    else:
        return None
    return lhs.strip(), grouping.strip()


def _rhs(formula: str) -> tuple[str, str]:
    if "~" not in formula:
        return "", formula
    lhs, rhs = formula.split("~", 1)
    return lhs.strip(), rhs


def random_effect_terms(formula: str) -> list[tuple[str, str]]:
    """List the ``(lhs, grouping expression)`` pair of every bar term.

    Example:
        >>> random_effect_terms("y ~ x + (1 + x | subj) + (1 | site)")
        [('1 + x', 'subj'), ('1', 'site')]
    """
    _, rhs = _rhs(formula)
    terms = []
    for part in _split_top_level(rhs, "+"):
        parsed = _parse_bar_term(part)
        if parsed is not None:
            terms.append(parsed)
    return terms


def grouping_variables(formula: str) -> list[str]:
    """Return the grouping variables of *formula* in formula order.

    Returns an empty list for fixed-effects-only formulas, which leads
    to case (row-level) resampling.

    Example:
        >>> grouping_variables("y ~ x + (1 | school/class) + (1 | subj)")
        ['school', 'class', 'subj']
    """
    names: list[str] = []
    for _, grouping in random_effect_terms(formula):
        for nested in grouping.split("/"):
            for name in nested.split(":"):
                name = name.strip()
                if name and name not in names:
                    names.append(name)
    return names


def fixed_effects_formula(formula: str) -> str:
    """Strip the bar terms from *formula*, keeping the fixed part.

    Example:
        >>> fixed_effects_formula("y ~ x + (1 | subj)")
        'y ~ x'
    """
    lhs, rhs = _rhs(formula)
    kept = [
        part.strip()
        for part in _split_top_level(rhs, "+")
        if part.strip() and _parse_bar_term(part) is None
    ]
    fixed = " + ".join(kept) if kept else "1"
    return f"{lhs} ~ {fixed}" if lhs else fixed


__all__ = ["fixed_effects_formula", "grouping_variables", "random_effect_terms"]

"""Case-preserving replacement."""


def preserve_case(original: str, replacement: str) -> str:
    """Reshape ``replacement`` to follow the capitalization of ``original``.

    Called once per match while a substitution runs, with the matched text as
    ``original``.

    Args:
        original: Text matched by the search pattern
        replacement: Literal replacement text

    Returns:
        Replacement upper-cased, lower-cased or capitalized to mirror the
        original
    """
    if not original or not replacement:
        return replacement

    if original == original.upper() and original != original.lower():
        return replacement.upper()

    if original == original.lower() and original != original.upper():
        return replacement.lower()

    if original[0] == original[0].upper() and original[1:] == original[1:].lower():
        return replacement[:1].upper() + replacement[1:].lower()

    # Mixed case: follow whichever case dominates
    upper_count = sum(1 for char in original if char.isupper())
    if upper_count / len(original) > 0.5:
        return replacement.upper()
    return replacement.lower()

from gmvote.services.voting.errors import ConfigurationError

OPTION_SEPARATOR = "/"


def parse_options(raw):
    """Split a slash-delimited option string ("A/B/C") into ordered labels.

    Lists are accepted as-is. Blank entries are dropped; repeated labels are
    a configuration error rather than being merged.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        entries = raw.split(OPTION_SEPARATOR)
    else:
        entries = list(raw)

    labels = [str(entry).strip() for entry in entries if str(entry).strip()]
    seen = set()
    for label in labels:
        folded = label.lower()
        if folded in seen:
            raise ConfigurationError(f"Option '{label}' is listed more than once.")
        seen.add(folded)
    return labels


def format_options(labels):
    return OPTION_SEPARATOR.join(labels)

import unicodedata


def normalize(s: str) -> str:
    """Normalizes a room or building name for search: NFC, case-folded, single-spaced."""
    return ' '.join(unicodedata.normalize('NFC', s).casefold().split())


def room_matches(room_name: str, query: str) -> bool:
    query = normalize(query)
    if not query:
        return False
    name = normalize(room_name)
    # "교육실a" should still find "교육실 A"
    return query in name or query.replace(' ', '') in name.replace(' ', '')

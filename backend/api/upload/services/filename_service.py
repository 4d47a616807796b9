"""Filename repair for names mangled by Latin-1 header decoding."""


def normalize_filename(raw_name: str) -> str:
    """Recover UTF-8 text that was mis-decoded as Latin-1.

    Every code point is taken back as one byte and the bytes are decoded as
    UTF-8. Names that cannot have come from that mistake (code points above
    255, or bytes that are not valid UTF-8) are returned unchanged.
    """
    try:
        return raw_name.encode("latin-1").decode("utf-8")
    except UnicodeError:
        return raw_name

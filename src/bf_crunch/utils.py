from typing import Iterator

SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "f": "\f",
    "v": "\v",
    "a": "\a",
    "b": "\b",
    "0": "\0",
}

HEX_ESCAPES = {"x": 2, "u": 4, "U": 8}


class TextError(ValueError):
    pass


def read_hex(chars: Iterator[str], digits: int, escape: str) -> int:
    value = 0
    for _ in range(digits):
        digit = next(chars, None)
        if digit is None:
            raise TextError(f"\\{escape} escape missing digits")
        if digit not in "0123456789abcdefABCDEF":
            raise TextError(f"Invalid hex digit '{digit}'")
        value = (value << 4) | int(digit, 16)
    return value


def unescape_text(text: str) -> str:
    """
    Decode regex-like escapes: \\n \\r \\t \\f \\v \\a \\b \\0, \\xHH, \\uHHHH,
    \\UHHHHHHHH and \\cX (control character). Any other escaped character stands
    for itself and a trailing backslash is kept.
    """
    output = []
    chars = iter(text)
    for ch in chars:
        if ch != "\\":
            output.append(ch)
            continue

        escape = next(chars, None)
        if escape is None:
            output.append("\\")
        elif escape in SIMPLE_ESCAPES:
            output.append(SIMPLE_ESCAPES[escape])
        elif escape in HEX_ESCAPES:
            value = read_hex(chars, HEX_ESCAPES[escape], escape)
            if value > 0x10FFFF or 0xD800 <= value <= 0xDFFF:
                raise TextError(f"Invalid \\{escape} escape")
            output.append(chr(value))
        elif escape == "c":
            control = next(chars, None)
            if control is None:
                raise TextError("\\c escape missing control character")
            output.append(chr(ord(control) & 0x1F))
        else:
            output.append(escape)
    return "".join(output)


def to_latin1_bytes(text: str) -> bytes:
    for ch in text:
        if ord(ch) > 0xFF:
            raise TextError(f"Character {ch!r} is not representable in ISO-8859-1")
    return text.encode("latin-1")


def parse_goal(text: str) -> bytes:
    """Turn command line text into the goal bytes."""
    goal = to_latin1_bytes(unescape_text(text))
    if not goal:
        raise TextError("The text to produce must not be empty")
    return goal

"""Unicode text transforms used by the Fun module."""

from __future__ import annotations

FRAKTUR_LOWER_A = 0x1D51E
FRAKTUR_UPPER_A = 0x1D504
BOLD_FRAKTUR_UPPER_A = 0x1D56C
FULLWIDTH_EXCLAMATION = 0xFF01
IDEOGRAPHIC_SPACE = "　"

# These capitals are missing from the regular Fraktur block.
FRAKTUR_BOLD_ONLY = frozenset("CHIRZ")

SMALLCAPS = dict(
    zip(
        "ABCDEFGHIJKLMNOPRSTUVWYZÆŒÐƷƎŁƆШГΛПРΨΩЛ",
        "ᴀʙᴄᴅᴇꜰɢʜɪᴊᴋʟᴍɴᴏᴘʀꜱᴛᴜᴠᴡʏᴢᴁɶᴆᴣⱻᴌᴐꟺᴦᴧᴨᴘᴪꭥл",
        strict=True,
    )
)


def frakturize_char(char: str) -> str:
    if "a" <= char <= "z":
        return chr(FRAKTUR_LOWER_A + ord(char) - ord("a"))
    if char in FRAKTUR_BOLD_ONLY:
        return chr(BOLD_FRAKTUR_UPPER_A + ord(char) - ord("A"))
    if "A" <= char <= "Z":
        return chr(FRAKTUR_UPPER_A + ord(char) - ord("A"))
    return char


def fullwidth_char(char: str) -> str:
    if "!" <= char <= "~":
        return chr(FULLWIDTH_EXCLAMATION + ord(char) - ord("!"))
    if char == " ":
        return IDEOGRAPHIC_SPACE
    return char


def smallcaps_char(char: str) -> str:
    return SMALLCAPS.get(char, char)


def frakturize(text: str) -> str:
    return "".join(map(frakturize_char, text))


def fullwidth(text: str) -> str:
    return "".join(map(fullwidth_char, text))


def smallcaps(text: str) -> str:
    return "".join(map(smallcaps_char, text))

"""
Input Classifier

Decides how one raw line of input is interpreted. Pure function:
the same line always yields the same classification.

    ""  / "   "        -> NOOP
    "exit" "QUIT" ...  -> EXIT
    "/anything"        -> SLASH_COMMAND
    everything else    -> NATURAL_LANGUAGE
"""

from src.models.chat import ClassifiedInput, InputKind


EXIT_WORDS = frozenset({"exit", "quit", "bye"})
DEFAULT_COMMAND_PREFIX = "/"


def classify_input(
    raw: str,
    command_prefix: str = DEFAULT_COMMAND_PREFIX,
) -> ClassifiedInput:
    """Classify a raw line of user input."""
    line = raw.strip()

    if not line:
        return ClassifiedInput(kind=InputKind.NOOP)

    if line.lower() in EXIT_WORDS:
        return ClassifiedInput(kind=InputKind.EXIT, raw=line)

    if line.startswith(command_prefix):
        return ClassifiedInput(kind=InputKind.SLASH_COMMAND, raw=line)

    return ClassifiedInput(kind=InputKind.NATURAL_LANGUAGE, raw=line)

from typing import Iterable

from keyenv.models import SecretInput, SecretWithValue

_QUOTE_TRIGGERS = (" ", "\t", "\n", '"', "'", "\\", "$")

# Order matters: backslash first so later escapes are not doubled
_ESCAPES = (("\\", "\\\\"), ('"', '\\"'), ("\n", "\\n"), ("$", "\\$"))


def format_env_value(value: str) -> str:
    if not any(ch in value for ch in _QUOTE_TRIGGERS):
        return value

    for raw, escaped in _ESCAPES:
        value = value.replace(raw, escaped)
    return f'"{value}"'


def render_env(secrets: Iterable[SecretWithValue]) -> str:
    """Render secrets as ``.env`` content, one ``KEY=value`` line each, in the given order."""
    return "".join(f"{s.key}={format_env_value(s.value)}\n" for s in secrets)


def _unescape(value: str) -> str:
    out = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, "")
        if nxt == "n":
            out.append("\n")
        elif nxt in ('\\', '"', "$"):
            out.append(nxt)
        else:
            out.append(ch + nxt)
    return "".join(out)


def parse_env(content: str) -> list[SecretInput]:
    """Parse ``.env`` content into secret inputs, keeping file order.

    Reverses :func:`format_env_value` for double-quoted values. Blank lines,
    comments and lines without ``=`` are skipped. A later duplicate key wins.
    """
    parsed: dict[str, str] = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue

        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = _unescape(value[1:-1])
        elif len(value) >= 2 and value[0] == value[-1] == "'":
            value = value[1:-1]

        parsed.pop(key, None)
        parsed[key] = value

    return [SecretInput(key=k, value=v) for k, v in parsed.items()]

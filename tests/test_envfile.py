from keyenv.models import SecretWithValue, SecretWithValueAndInheritance
from keyenv.utils.envfile import format_env_value, parse_env, render_env


def _secret(key: str, value: str) -> SecretWithValue:
    return SecretWithValue(key=key, value=value)


class TestRenderEnv:

    def test_simple_value_unquoted(self) -> None:
        assert render_env([_secret("KEY", "simple")]) == "KEY=simple\n"

    def test_space_is_quoted(self) -> None:
        assert render_env([_secret("KEY", "hello world")]) == 'KEY="hello world"\n'

    def test_dollar_is_escaped(self) -> None:
        assert format_env_value("$PATH:/bin") == '"\\$PATH:/bin"'

    def test_newline_stays_on_one_line(self) -> None:
        rendered = render_env([_secret("CERT", "line1\nline2")])

        assert rendered == 'CERT="line1\\nline2"\n'
        assert rendered.count("\n") == 1

    def test_backslash_escaped_before_quotes(self) -> None:
        assert format_env_value('a\\"b') == '"a\\\\\\"b"'

    def test_single_quote_triggers_quoting_without_escape(self) -> None:
        assert format_env_value("it's") == "\"it's\""

    def test_tab_triggers_quoting(self) -> None:
        assert format_env_value("a\tb") == '"a\tb"'

    def test_preserves_server_order(self) -> None:
        secrets = [
            SecretWithValueAndInheritance(key="ZED", value="1"),
            SecretWithValueAndInheritance(key="ALPHA", value="2"),
        ]

        assert render_env(secrets) == "ZED=1\nALPHA=2\n"

    def test_empty(self) -> None:
        assert render_env([]) == ""


class TestParseEnv:

    def test_parse_basic_file(self) -> None:
        content = (
            "# database\n"
            "\n"
            "DATABASE_URL=postgres://localhost/db\n"
            "export API_KEY=abc123\n"
            "NOT A PAIR\n"
            "SINGLE='quoted value'\n"
        )

        parsed = parse_env(content)

        assert [(s.key, s.value) for s in parsed] == [
            ("DATABASE_URL", "postgres://localhost/db"),
            ("API_KEY", "abc123"),
            ("SINGLE", "quoted value"),
        ]

    def test_parse_reverses_render(self) -> None:
        values = {
            "A": "hello world",
            "B": "line1\nline2",
            "C": "cost $5",
            "D": 'say "hi" \\o/',
            "E": "plain",
        }
        rendered = render_env([_secret(k, v) for k, v in values.items()])

        parsed = {s.key: s.value for s in parse_env(rendered)}

        assert parsed == values

    def test_later_duplicate_wins(self) -> None:
        parsed = parse_env("KEY=one\nKEY=two\n")

        assert len(parsed) == 1
        assert parsed[0].value == "two"

    def test_value_may_contain_equals(self) -> None:
        parsed = parse_env("TOKEN=a=b=c\n")
        assert parsed[0].value == "a=b=c"

from datetime import datetime

from rich.console import Console

from keyenv.models import (
    Environment,
    Permission,
    Project,
    SecretHistory,
    SecretWithInheritance,
    SecretWithValueAndInheritance,
)
from keyenv.utils.console import (
    MASK,
    create_history_table,
    create_permissions_table,
    create_projects_table,
    create_secrets_table,
)


def _render(table) -> str:
    console = Console(width=200, record=True)
    console.print(table)
    return console.export_text()


class TestConsoleTables:

    def test_secrets_masked_by_default(self) -> None:
        secrets = [SecretWithValueAndInheritance(key="API_KEY", value="sk_live_1", version=3)]

        output = _render(create_secrets_table(secrets))

        assert "API_KEY" in output
        assert MASK in output
        assert "sk_live_1" not in output

    def test_secrets_show_values(self) -> None:
        secrets = [
            SecretWithValueAndInheritance(key="API_KEY", value="sk_live_1", inherited_from="staging")
        ]

        output = _render(create_secrets_table(secrets, show_values=True))

        assert "sk_live_1" in output
        assert "staging" in output

    def test_listing_without_values(self) -> None:
        output = _render(create_secrets_table([SecretWithInheritance(key="ONLY_KEY")]))

        assert "ONLY_KEY" in output
        assert MASK not in output

    def test_history_table(self) -> None:
        history = [
            SecretHistory(
                id="h1", version=2, change_type="updated", created_at=datetime(2024, 5, 1, 12, 0, 0)
            )
        ]

        output = _render(create_history_table(history))

        assert "updated" in output
        assert "unknown" in output
        assert "2024-05-01 12:00:00" in output

    def test_permissions_table(self) -> None:
        permissions = [Permission(user_id="u1", user_email="dev@example.com", role="write")]

        output = _render(create_permissions_table(permissions))

        assert "dev@example.com" in output
        assert "write" in output

    def test_projects_table(self) -> None:
        project = Project(
            id="p1",
            name="Backend",
            environments=[Environment(id="e1", name="development"), Environment(id="e2", name="production")],
        )

        output = _render(create_projects_table([project]))

        assert "Backend" in output
        assert "development, production" in output

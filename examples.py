#!/usr/bin/env python3
"""
KeyEnv Python SDK Demo

Walks through the client API against a real project.
Set KEYENV_TOKEN and KEYENV_PROJECT before running.
"""

import asyncio
import os

from keyenv import KeyEnv, KeyEnvError, SecretInput
from keyenv.utils.console import (
    console,
    create_history_table,
    create_permissions_table,
    create_projects_table,
    create_secrets_table,
    print_error,
    print_info,
    print_success,
)

PROJECT = os.getenv("KEYENV_PROJECT", "sdk-demo")
ENVIRONMENT = os.getenv("KEYENV_ENVIRONMENT", "development")


def demo_identity(client: KeyEnv):
    print("=" * 60)
    print("IDENTITY")
    print("=" * 60)

    me = client.validate_token()
    if me.is_service_token:
        token = me.service_token
        print_info(f"Service token {token.name} for project {token.project_name}")
        if token.is_expired:
            print_error("Token has expired")
    else:
        print_info(f"Signed in as {me.user.email}")


def demo_projects(client: KeyEnv):
    print("\n" + "=" * 60)
    print("PROJECTS")
    print("=" * 60)

    console.print(create_projects_table(client.list_projects()))


def demo_secrets(client: KeyEnv):
    print("\n" + "=" * 60)
    print("SECRETS")
    print("=" * 60)

    print("\n1. Setting secrets...")
    client.set_secret(PROJECT, ENVIRONMENT, "DEMO_API_KEY", "abc123xyz")
    client.set_secret(PROJECT, ENVIRONMENT, "DEMO_GREETING", "hello world", description="Demo")
    print_success("Set 2 secrets")

    print("\n2. Getting a secret...")
    secret = client.get_secret(PROJECT, ENVIRONMENT, "DEMO_API_KEY")
    print(f"DEMO_API_KEY = {secret.value}")

    print("\n3. Listing (values hidden):")
    console.print(create_secrets_table(client.export_secrets(PROJECT, ENVIRONMENT)))

    print("\n4. History:")
    console.print(create_history_table(client.get_secret_history(PROJECT, ENVIRONMENT, "DEMO_API_KEY")))


def demo_bulk(client: KeyEnv):
    print("\n" + "=" * 60)
    print("BULK IMPORT")
    print("=" * 60)

    secrets = [SecretInput(key=f"DEMO_BULK_{n}", value=f"value-{n}") for n in range(3)]
    result = client.bulk_import(PROJECT, ENVIRONMENT, secrets)
    print_info(f"created={result.created} updated={result.updated} skipped={result.skipped}")

    result = client.bulk_import(PROJECT, ENVIRONMENT, secrets, overwrite=True)
    print_info(f"with overwrite: updated={result.updated}")


def demo_env_file(client: KeyEnv):
    print("\n" + "=" * 60)
    print(".ENV OUTPUT")
    print("=" * 60)

    print(client.generate_env_file(PROJECT, ENVIRONMENT))

    values = client.load_env(PROJECT, ENVIRONMENT)
    print_info(f"Resolved {len(values)} variables (process environment untouched)")


def demo_permissions(client: KeyEnv):
    print("\n" + "=" * 60)
    print("PERMISSIONS")
    print("=" * 60)

    try:
        console.print(create_permissions_table(client.list_permissions(PROJECT, ENVIRONMENT)))
    except KeyEnvError as e:
        if not e.is_forbidden:
            raise
        print_error("Not allowed to view permissions")


async def demo_async(client: KeyEnv):
    print("\n" + "=" * 60)
    print("ASYNC")
    print("=" * 60)

    projects, secrets = await asyncio.gather(
        client.list_projects_async(),
        client.export_secrets_as_map_async(PROJECT, ENVIRONMENT),
    )
    print_info(f"{len(projects)} projects, {len(secrets)} secrets in {ENVIRONMENT}")


def cleanup(client: KeyEnv):
    print("\n" + "=" * 60)
    print("CLEANUP")
    print("=" * 60)

    keys = ["DEMO_API_KEY", "DEMO_GREETING"] + [f"DEMO_BULK_{n}" for n in range(3)]
    for key in keys:
        try:
            client.delete_secret(PROJECT, ENVIRONMENT, key)
        except KeyEnvError as e:
            if not e.is_not_found:
                raise
    print_success(f"Deleted {len(keys)} demo secrets")


def main():
    token = os.getenv("KEYENV_TOKEN")
    if not token:
        print_error("Set KEYENV_TOKEN to run the demo")
        return

    with KeyEnv(token, cache_ttl=60) as client:
        try:
            demo_identity(client)
            demo_projects(client)
            demo_secrets(client)
            demo_bulk(client)
            demo_env_file(client)
            demo_permissions(client)
            asyncio.run(demo_async(client))
        except KeyEnvError as e:
            print_error(str(e))
        finally:
            cleanup(client)


if __name__ == "__main__":
    main()

"""Module entrypoint for ``python -m rolesync_api`` CLI usage."""

from rolesync_api.cli import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()

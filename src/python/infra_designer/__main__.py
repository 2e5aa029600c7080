"""Entry point for infra_designer."""

from .cli import cli


def main() -> None:
    """Entry point for the infra-designer CLI."""
    cli()


if __name__ == "__main__":
    main()

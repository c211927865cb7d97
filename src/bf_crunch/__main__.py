"""Main entry point for the bf_crunch package."""
from bf_crunch.cli import cli


def main():
    """Main entry point function."""
    cli()


if __name__ == "__main__":
    main()

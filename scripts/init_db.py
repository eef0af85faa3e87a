"""Create the database schema; same as ``zigsync init-db``."""

from zigsync import cli


def main() -> int:
    return cli.main(["init-db"])


if __name__ == "__main__":
    raise SystemExit(main())

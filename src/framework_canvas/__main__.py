"""cli entrypoint for framework canvas."""

from .api.server import main


if __name__ == "__main__":
    main()

"""Allow ``python -m card_review``."""

from card_review.cli import main


if __name__ == "__main__":
    main()

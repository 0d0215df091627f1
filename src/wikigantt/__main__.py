"""Allow ``python -m wikigantt``."""

from wikigantt.cli import main

main()

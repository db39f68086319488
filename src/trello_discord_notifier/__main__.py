import sys

from trello_discord_notifier.cli import main

sys.exit(main())

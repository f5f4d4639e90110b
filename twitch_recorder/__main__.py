import sys

from twitch_recorder.main import main

sys.exit(main())

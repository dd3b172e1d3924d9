"""CLI shim -- delegates to emojiprep.cli.main().

Usage:
    python emoji_assets.py fetch
    python emoji_assets.py convert --format webp --size 32
    python emoji_assets.py unicode
"""

from emojiprep.cli import main

if __name__ == "__main__":
    main()

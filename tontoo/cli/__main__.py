"""
Entry point for ``python -m tontoo.cli``.
"""

from . import main

if __name__ == "__main__":
    main()

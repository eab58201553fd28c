"""
Entry point for `python -m mysql_backup`.
"""

from .main import main

if __name__ == '__main__':
    main()

"""Entry point: python -m acs <command>"""

from acs.cli import main

if __name__ == "__main__":
    main()

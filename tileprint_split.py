#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Split an image into paper-sized tiles for printing.
"""

# Standard Library
import sys

# local repo modules
import tileprint.cli


if __name__ == "__main__":
	sys.exit(tileprint.cli.main())

#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Generate printable PDF sheets of circular pin/button templates.
"""

import sys

import pin_sheet_maker.cli


if __name__ == "__main__":
	sys.exit(pin_sheet_maker.cli.main())

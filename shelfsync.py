#!/usr/bin/env python
# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

import os
import sys


# Add local path to sys.path, so we can import shelfsync
path = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, path)

from shelfsync.main import main


if __name__ == '__main__':
    main()

# -*- coding: utf-8 -*-
"""HTTP request handlers (aiohttp.web)."""

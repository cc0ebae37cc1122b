# -*- coding: utf-8 -*-
"""Completion and caching pipeline services."""

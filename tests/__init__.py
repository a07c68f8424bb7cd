"""
Quote Client Test Suite
=======================

Unit tests for the resilient quote client, its upstream source and the
shared utilities. The upstream provider is always mocked.
"""

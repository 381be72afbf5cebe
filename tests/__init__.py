"""Test suite for Splitly Ledger Sync."""

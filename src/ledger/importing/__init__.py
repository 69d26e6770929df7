"""Ledger Import Module.

This module provides the bulk import and reassignment-history features of
the device-lending ledger:
- Read tablet, iPhone, feature phone, router and address spreadsheets
- Normalize, validate and de-duplicate every row
- Insert clean rows and report the rest with their row numbers
- Record a device's previous holder whenever it changes hands

Architecture: Clean Architecture with Hexagonal (Ports & Adapters)
"""

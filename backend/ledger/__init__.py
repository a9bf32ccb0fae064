"""Ledger computation core for the metal trading book.

Record store, FIFO settlement, due-date classification and the vepari,
customer and P&L aggregations.
"""

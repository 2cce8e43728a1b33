"""Roster maintenance: bulk registration of participants from spreadsheet rows."""

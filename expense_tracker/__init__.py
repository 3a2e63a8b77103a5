"""
Expense Tracker - Source Package

Back end for a shared expense tracker: statement import, date
disambiguation, verification and budget analytics.

DESIGN PRINCIPLES:
1. Imported data is PROPOSED → User verifies → Dashboards trust it
2. Fail visibly: unparseable dates are reported, never guessed
3. No silent corrections - every repair is returned in a report
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"

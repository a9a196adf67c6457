"""
Financial Automation Core

The rule engine and budget analyzer behind the personal finance
assistant's automation and recommendation features.

DESIGN PRINCIPLES:
1. One rule's failure never stops the batch
2. Analyses are all-or-nothing
3. No silent corrections - invalid input is rejected loudly
4. Every run is auditable
5. Storage and collaborators are swappable
"""

__version__ = "1.0.0"
__author__ = "Financial Automation Team"

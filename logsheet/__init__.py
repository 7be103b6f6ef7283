"""logsheet: edit structured logging workbooks row by row.

Reads the group / column header rows of the primary sheet, classifies each
column as free text or a choice list, maps data rows to flat records and
writes edited records back into their original cells.
"""

__version__ = "0.1.0"

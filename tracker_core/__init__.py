"""Core (UI-agnostic) tracker logic.

This package contains:
- typed entity records (funds, companies, students, assignments, grades,
  vehicles, shipments) and their kind catalogue
- row parsing and bulk CSV/JSON import
- derived metrics (DPI, TVPI, MOIC, IRR), portfolio roll-ups and grade averages
- filter/sort over entity collections
- the entity store and its persistence bridges
"""

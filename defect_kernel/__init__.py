"""
Defect Kernel - defect quantity distribution against production orders.

A transactional allocation engine with:
- Dry-run simulation before any write
- Optimistic per-order conditional updates
- Retry-once-then-skip contention policy
- All-or-nothing commit per distribution request
- Append-only defect result log with daily defect numbers
"""

__version__ = "0.1.0"

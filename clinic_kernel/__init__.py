"""
Clinic Kernel - Consultation Ledger & Inventory Transaction Engine

Records what a patient consumes during a consultation against a shared,
finite inventory:
- Stock never goes negative (locked check-and-decrement)
- Composite procedures reserve all of their components or none
- The consultation total always equals fee + line items + extras
- Cancellation restores every reservation atomically
"""

__version__ = "0.1.0"

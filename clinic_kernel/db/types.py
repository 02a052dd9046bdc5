"""
Module: clinic_kernel.db.types
Responsibility: Column types shared by the models, so that every money,
    quantity, and code column uses one definition.
Architecture position: Kernel > DB.  May be imported by models/.  MUST NOT
    import from models/, services/, selectors/ or domain/.

Invariants enforced:
    - No floats for money or stock.  Money is Numeric(18, 2); quantities are
      Numeric(18, 3) so fractional units (e.g. 0.5 ml) are representable.
"""

from sqlalchemy import Numeric, String

# Monetary amount; the scale bounds the configurable billing precision
MONEY = Numeric(18, 2)

# Stock / consumption quantity
QUANTITY = Numeric(18, 3)

# Short identifier strings (item codes, categories, statuses, units)
SHORT_CODE = String(50)

# Display names and labels
LABEL = String(255)

# Free text notes
LONG_TEXT = String(4000)

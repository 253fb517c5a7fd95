"""Top‑level package for the monthly budget tracker.

The primary modules are:

* ``periods`` – month+year tracking periods derived from a clock
* ``balances`` – lazy per-period category balances
* ``allocation`` – income allocation rules and the calculator
* ``service`` – the ``BudgetTracker`` entry points used by the dashboard

To run the dashboard from the command line you can execute:

```bash
streamlit run finance_tracker/Home.py
```
"""

from . import allocation  # noqa: F401  # re-exported for convenience
from . import balances  # noqa: F401  # re-exported for convenience
from . import periods  # noqa: F401  # re-exported for convenience
from .service import BudgetTracker  # noqa: F401

__all__ = ["allocation", "balances", "periods", "BudgetTracker"]

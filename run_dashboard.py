#!/usr/bin/env python3
"""Direct launcher for the monthly tracker dashboard."""

import os
import subprocess
import sys
from pathlib import Path

# Get the project root and package directory
project_root = Path(__file__).parent.resolve()
package_dir = project_root / "finance_tracker"

if __name__ == "__main__":
    os.chdir(package_dir)
    # Add project root to path for imports
    sys.path.insert(0, str(project_root))
    subprocess.run([
        sys.executable, "-m", "streamlit", "run",
        "Home.py"
    ])

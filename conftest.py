"""
pytest configuration for quadhover tests

Adds the project root to the Python path so tests can import the package
without installing it.
"""

import sys
from pathlib import Path

# Add project root to Python path
root_path = Path(__file__).parent
if str(root_path) not in sys.path:
    sys.path.insert(0, str(root_path))

"""
pytest configuration for the Marketo step core tests.

Adds the src directory to the Python path so tests import the packages
without an editable install.
"""

import sys
from pathlib import Path

src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

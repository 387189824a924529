"""
Pytest configuration file for the raw HTTP server project.
This file ensures that the rawhttp package can be imported during tests.
"""

import sys
from pathlib import Path

# Add the project root directory to the Python path
project_root = Path(__file__).parent.absolute()
sys.path.insert(0, str(project_root))

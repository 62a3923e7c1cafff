"""
Main entry point script for PyStreetSim.

This script serves as the executable entry point when running
PyStreetSim from the command line.
"""

import sys
from pystreetsim.main import main

if __name__ == "__main__":
    sys.exit(main())

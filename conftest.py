import os
import sys

# Makes the tests package importable (tests.channels.mock) without
# installing it.
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

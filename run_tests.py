#!/usr/bin/env python3
"""
Simple test runner for the commission bot unit tests
"""

import os
import sys
import unittest

# Make the commission_bot package importable without installing it
ROOT_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, ROOT_DIR)

if __name__ == '__main__':
    # Discover and run tests
    loader = unittest.TestLoader()
    suite = loader.discover(os.path.join(ROOT_DIR, 'tests'), pattern='test_*.py', top_level_dir=ROOT_DIR)

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    # Exit with error code if tests failed
    sys.exit(0 if result.wasSuccessful() else 1)

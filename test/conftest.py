"""
Test configuration for tinylisp lexer and parser tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parsing import LispParser


@pytest.fixture
def parser():
  """Provide a fresh parser instance for each test"""
  return LispParser()

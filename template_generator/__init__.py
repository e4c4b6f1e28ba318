"""
Template Generator - turns visually designed page templates and tabular data
into Word documents.

Fields placed at pixel positions on a paper format are rendered once per data
row with absolute, relative or hybrid (table based) positioning, optionally
merged into one document and delivered as files or a zip archive.
"""

__version__ = "1.0.0"
__author__ = "Template Generator Team"

from .core.config import Config
from .core.generator import DocumentGenerator
from .core.models import DataTable, GenerationOptions, Template

__all__ = ['DocumentGenerator', 'Config', 'Template', 'DataTable', 'GenerationOptions']

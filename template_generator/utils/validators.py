"""
Validation utilities for templates, data tables and file paths.
"""

import os
from typing import Any, Dict, List

from ..core.config import Config
from ..core.models import DataTable, Template, TemplateElement


class Validators:
    """Utility class for validating generator inputs."""

    @staticmethod
    def validate_element(element: TemplateElement) -> Dict[str, Any]:
        """
        Validate one template element.

        Args:
            element: Element to check

        Returns:
            Dict with ``valid``, ``errors`` and ``geometry_errors`` (the subset of
            errors about position or size)
        """
        result = {
            'valid': False,
            'errors': [],
            'geometry_errors': [],
        }
        label = element.field_name or element.id

        if not element.id:
            result['errors'].append("Element has no id")
        if not (element.field_name or '').strip():
            result['errors'].append(f"Element {element.id} has no field name")

        if element.x < 0 or element.y < 0:
            result['geometry_errors'].append(
                f"Element '{label}' has a negative position ({element.x}, {element.y})")
        if element.width < Config.MIN_ELEMENT_SIZE or element.height < Config.MIN_ELEMENT_SIZE:
            result['geometry_errors'].append(
                f"Element '{label}' is smaller than {Config.MIN_ELEMENT_SIZE}px "
                f"({element.width}x{element.height})")

        styles = element.styles
        if not Config.MIN_FONT_SIZE <= styles.font_size <= Config.MAX_FONT_SIZE:
            result['errors'].append(
                f"Element '{label}' font size {styles.font_size} is outside "
                f"{Config.MIN_FONT_SIZE}-{Config.MAX_FONT_SIZE}")
        if styles.text_align not in Config.TEXT_ALIGNMENTS:
            result['errors'].append(f"Element '{label}' has invalid text alignment '{styles.text_align}'")

        result['errors'].extend(result['geometry_errors'])
        result['valid'] = not result['errors']
        return result

    @staticmethod
    def validate_template(template: Template) -> Dict[str, Any]:
        """
        Validate a template's structure.

        Args:
            template: Template to check

        Returns:
            Dict with ``valid``, ``errors``, ``geometry_errors`` and ``warnings``
        """
        result = {
            'valid': False,
            'errors': [],
            'geometry_errors': [],
            'warnings': [],
        }

        name = (template.name or '').strip()
        if not name:
            result['errors'].append("Template name is required")
        elif len(name) > Config.TEMPLATE_NAME_MAX_LENGTH:
            result['errors'].append(
                f"Template name is longer than {Config.TEMPLATE_NAME_MAX_LENGTH} characters")

        paper = template.paper_format
        if paper is None or not paper.name or paper.width <= 0 or paper.height <= 0:
            result['errors'].append("Template paper format is invalid")

        if not template.elements:
            result['errors'].append("Template has no elements")

        seen_ids = set()
        for element in template.elements:
            if element.id in seen_ids:
                result['errors'].append(f"Duplicate element id: {element.id}")
            seen_ids.add(element.id)

            element_result = Validators.validate_element(element)
            result['errors'].extend(element_result['errors'])
            result['geometry_errors'].extend(element_result['geometry_errors'])

            if paper is not None and (element.right > paper.width or element.bottom > paper.height):
                result['warnings'].append(
                    f"Element '{element.field_name}' extends beyond the {paper.name} page")

        result['valid'] = not result['errors']
        return result

    @staticmethod
    def validate_data_table(data_table: DataTable) -> Dict[str, Any]:
        """
        Validate a data table.

        Duplicate column names are errors; rows whose keys differ from the
        headers only produce warnings, missing columns resolve to the empty
        sentinel at generation time.
        """
        result = {
            'valid': False,
            'errors': [],
            'warnings': [],
            'row_count': len(data_table.rows),
        }

        headers = data_table.headers
        duplicates = sorted({h for h in headers if headers.count(h) > 1})
        if duplicates:
            result['errors'].append(f"Duplicate column names: {', '.join(duplicates)}")
        if not headers:
            result['warnings'].append("Data table has no columns")
        if not data_table.rows:
            result['warnings'].append("Data table has no rows")

        expected = set(headers)
        mismatched: List[int] = [idx for idx, row in enumerate(data_table.rows) if set(row) != expected]
        if mismatched:
            result['warnings'].append(
                f"{len(mismatched)} row(s) do not match the column headers "
                f"(first: row {mismatched[0] + 1})")

        result['valid'] = not result['errors']
        return result

    @staticmethod
    def validate_input_file(path: str, extensions: List[str]) -> Dict[str, Any]:
        """
        Validate an input file path against a list of allowed extensions.

        Returns:
            Dict with ``valid``, ``resolved_path``, ``error_message`` and ``file_size_mb``
        """
        result = {
            'valid': False,
            'resolved_path': None,
            'error_message': None,
            'file_size_mb': 0.0,
        }

        resolved_path = os.path.abspath(path)
        if not os.path.exists(resolved_path):
            result['error_message'] = f"File not found: {resolved_path}"
            return result
        if not os.path.isfile(resolved_path):
            result['error_message'] = f"Path is not a file: {resolved_path}"
            return result
        if not any(resolved_path.lower().endswith(ext) for ext in extensions):
            result['error_message'] = (
                f"Unsupported file type: {resolved_path} (expected {', '.join(extensions)})")
            return result

        result['file_size_mb'] = os.path.getsize(resolved_path) / (1024 * 1024)
        result['valid'] = True
        result['resolved_path'] = resolved_path
        return result

    @staticmethod
    def validate_output_directory(output_dir: str) -> Dict[str, Any]:
        """
        Validate an output directory. It may not exist yet, but then its
        nearest existing ancestor must be writable.

        Returns:
            Dict with ``valid``, ``resolved_path``, ``error_message`` and ``exists``
        """
        result = {
            'valid': False,
            'resolved_path': None,
            'error_message': None,
            'exists': False,
        }

        resolved_path = os.path.abspath(output_dir)
        if os.path.exists(resolved_path):
            if not os.path.isdir(resolved_path):
                result['error_message'] = f"Output path is not a directory: {resolved_path}"
                return result
            result['exists'] = True
            ancestor = resolved_path
        else:
            ancestor = os.path.dirname(resolved_path)
            while ancestor and not os.path.exists(ancestor):
                parent = os.path.dirname(ancestor)
                if parent == ancestor:
                    break
                ancestor = parent

        if not os.access(ancestor, os.W_OK):
            result['error_message'] = f"Output directory is not writable: {ancestor}"
            return result

        result['valid'] = True
        result['resolved_path'] = resolved_path
        return result

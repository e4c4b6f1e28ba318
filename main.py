#!/usr/bin/env python3
"""
Template Generator - Main CLI entry point.

Renders a page template (JSON) against a data table (JSON or CSV) into Word
documents.
"""

import argparse
import csv
import json
import sys
from pathlib import Path

from template_generator.core.config import Config
from template_generator.core.exceptions import TemplateGeneratorError
from template_generator.core.generator import DocumentGenerator
from template_generator.core.models import (
    DataTable,
    GeneratedDocument,
    GenerationOptions,
    Margins,
    PageOrientation,
    PositioningMode,
    Template,
)
from template_generator.delivery.manager import DeliveryManager, DirectorySink
from template_generator.utils.logging_config import get_logger, setup_logging
from template_generator.utils.validators import Validators


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog='template-generator',
        description=f'Template Generator v{Config.__version__} - Render page templates into DOCX documents',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s invoice.json clients.csv out/
  %(prog)s invoice.json clients.json out/ --row 3 --mode relative
  %(prog)s invoice.json clients.csv out/ --all --merge --landscape

Positioning modes:
  hybrid    - (Default) One borderless table per visual row
  relative  - One paragraph per visual row, gaps rendered as spaces
  absolute  - Page-anchored text boxes plus a relative copy

System fields:
  {{currentDate}} {{currentTime}} {{currentDateTime}} {{pageNumber}}
  {{totalPages}} {{documentTitle}} {{author}}
        """)

    parser.add_argument('template_file', help='Template JSON file')
    parser.add_argument('data_file', help='Data table file (.json with headers/rows, or .csv)')
    parser.add_argument('output_dir', help='Directory for generated documents')
    rows = parser.add_mutually_exclusive_group()
    rows.add_argument('--row', type=int, default=1, help='1-based data row to render (default: 1)')
    rows.add_argument('--all', action='store_true', help='Render every data row')
    parser.add_argument('--merge', action='store_true', help='With --all, merge all documents into one')
    parser.add_argument('--mode', choices=[m.value for m in PositioningMode],
                        default=Config.DEFAULT_POSITIONING_MODE, help='Positioning mode')
    parser.add_argument('--landscape', action='store_true', help='Landscape page orientation')
    parser.add_argument('--include-headers', action='store_true', help='Print the column headers line')
    parser.add_argument('--no-archive', action='store_true', help='Write documents individually instead of a zip')
    parser.add_argument('--margins', help='Page margins in twips: TOP,RIGHT,BOTTOM,LEFT')
    parser.add_argument('--title', default=Config.DEFAULT_DOCUMENT_TITLE, help='Document title')
    parser.add_argument('--author', default=Config.DEFAULT_AUTHOR, help='Document author')
    parser.add_argument('--verbose', '-v', '--debug', action='store_true', help='Enable verbose logging (DEBUG level)')
    parser.add_argument('--log-file', help='Log to file in addition to console')
    parser.add_argument('--version', action='version', version=f'Template Generator v{Config.__version__}')

    args = parser.parse_args(argv)

    setup_logging(log_file=args.log_file, verbose=args.verbose)

    logger = get_logger()
    logger.info("=" * 60)
    logger.info(f"Template Generator v{Config.__version__} - Starting generation")
    logger.info("=" * 60)

    try:
        return handle_generation(args, logger)
    except KeyboardInterrupt:
        logger.warning("\n⚠️ Generation interrupted by user.")
        return 1


def handle_generation(args, logger) -> int:
    """Load inputs, generate and deliver documents."""
    template_check = Validators.validate_input_file(args.template_file, Config.SUPPORTED_TEMPLATE_EXTENSIONS)
    if not template_check['valid']:
        logger.error(template_check['error_message'])
        return 1
    data_check = Validators.validate_input_file(args.data_file, Config.SUPPORTED_DATA_EXTENSIONS)
    if not data_check['valid']:
        logger.error(data_check['error_message'])
        return 1
    output_check = Validators.validate_output_directory(args.output_dir)
    if not output_check['valid']:
        logger.error(output_check['error_message'])
        return 1

    try:
        template = load_template(template_check['resolved_path'])
        data_table = load_data_table(data_check['resolved_path'])
        options = build_options(args)
    except (OSError, ValueError, KeyError) as e:
        logger.error(f"Cannot read input: {e}")
        return 1

    logger.info(f"Template: {template.name} ({len(template.elements)} elements, {template.paper_format.name})")
    logger.info(f"Data: {len(data_table.rows)} row(s), {len(data_table.headers)} column(s)")
    logger.info(f"Output: {output_check['resolved_path']}")

    generator = DocumentGenerator()
    manager = DeliveryManager(DirectorySink(output_check['resolved_path']), policy=generator.policy)

    try:
        result = generator.generate(template, data_table, options)

        if isinstance(result, bytes):
            row_index = None if options.generate_all else options.row_index
            name = generator.policy.document_name(template.name, row_index)
            delivered = manager.deliver([GeneratedDocument(row_index, name, result)], template.name)
        elif result:
            delivered = manager.deliver(result, template.name, archive=not args.no_archive)
        else:
            logger.warning("⚠️ No documents were generated.")
            return 0
    except TemplateGeneratorError as e:
        logger.error("=" * 60)
        logger.error(f"❌ Generation failed: {e.message}")
        logger.error("=" * 60)
        return 1
    except Exception as e:
        logger.error(f"❌ A critical error occurred: {e}", exc_info=True)
        return 1

    logger.info("=" * 60)
    logger.info("🎉 Document generation completed successfully!")
    for filename in delivered:
        logger.info(f"📄 Output: {filename}")
    logger.info("=" * 60)
    return 0


def load_template(path: str) -> Template:
    with open(path, encoding='utf-8') as f:
        return Template.from_dict(json.load(f))


def load_data_table(path: str) -> DataTable:
    """Read a data table from JSON (``{headers, rows}`` or a list of objects) or CSV."""
    if path.lower().endswith('.csv'):
        with open(path, encoding='utf-8-sig', newline='') as f:
            reader = csv.DictReader(f)
            rows = [dict(row) for row in reader]
            return DataTable(headers=list(reader.fieldnames or []), rows=rows)

    with open(path, encoding='utf-8') as f:
        data = json.load(f)
    if isinstance(data, list):
        headers = []
        for row in data:
            headers.extend(key for key in row if key not in headers)
        return DataTable(headers=headers, rows=data)
    return DataTable.from_dict(data)


def parse_margins(value: str) -> Margins:
    parts = [p.strip() for p in value.split(',')]
    if len(parts) != 4:
        raise ValueError(f"Margins must be TOP,RIGHT,BOTTOM,LEFT, got: {value}")
    top, right, bottom, left = (int(p) for p in parts)
    return Margins(top=top, right=right, bottom=bottom, left=left)


def build_options(args) -> GenerationOptions:
    if args.merge and not args.all:
        raise ValueError("--merge requires --all")
    return GenerationOptions(
        row_index=args.row - 1,
        generate_all=args.all,
        include_headers=args.include_headers,
        page_orientation=PageOrientation.LANDSCAPE if args.landscape else PageOrientation.PORTRAIT,
        positioning_mode=PositioningMode(args.mode),
        margins=parse_margins(args.margins) if args.margins else Margins(),
        merge=args.merge,
        title=args.title,
        author=args.author,
        file_name=Path(args.template_file).stem,
    )


if __name__ == '__main__':
    sys.exit(main())

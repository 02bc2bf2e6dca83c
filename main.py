import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.pdf_miner_config import PDFMinerConfig
from core.pdf_text_extractor import PDFTextExtractor
from processor.pipeline import AnalyzerConfig, DocumentAnalysis, analyze_pages, process_pdf
from utils.file_io import load_fragment_pages, load_json, save_json
from utils.json_serializer import document_to_dict
from utils.logger import setup_logger, setup_package_loggers

logger = logging.getLogger("layout_analyzer")

OUTPUT_FORMATS = ("markdown", "text", "json")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Analyze the layout of PDF pages: columns, reading order, "
                    "paragraphs, headings and lists"
    )

    parser.add_argument(
        "input_path",
        help="Path to a PDF file or a JSON file of text fragments"
    )

    parser.add_argument(
        "-o", "--output",
        help="Path to output file (default: stdout)",
        default=None
    )

    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="markdown",
        help="Output format (default: markdown)"
    )

    parser.add_argument(
        "--config",
        help="Path to JSON config file with analyzer and pdfminer settings",
        default=None
    )

    parser.add_argument(
        "--pages",
        type=int,
        nargs="+",
        metavar="N",
        help="1-based numbers of the pages to analyze (default: all)"
    )

    parser.add_argument(
        "--no-header-footer",
        action="store_false", dest="filter_headers_footers",
        help="Keep repeated header and footer text"
    )

    parser.add_argument(
        "--quick",
        action="store_true",
        help="Only detect reading order and paragraphs"
    )

    parser.add_argument(
        "--page-width",
        type=float,
        default=None,
        help="Page width for a JSON file holding a plain fragment list"
    )

    parser.add_argument(
        "--page-height",
        type=float,
        default=None,
        help="Page height for a JSON file holding a plain fragment list"
    )

    parser.add_argument(
        "--visualize",
        help="Write <name>_layout.pdf with the detected element boxes (PDF input only)",
        action="store_true"
    )

    parser.add_argument(
        "--log-file",
        help="Path to log file",
        default=None
    )

    parser.add_argument(
        "-v", "--verbose",
        help="Increase output verbosity",
        action="store_true"
    )

    return parser.parse_args(argv)


def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    """Load the analyzer configuration file, an empty mapping when none is given."""
    if not config_path:
        return {}
    config = load_json(config_path)
    if not isinstance(config, dict):
        raise ValueError(f"Config file {config_path} must contain a JSON object")
    return config


def configure_logging(verbose: bool, log_file: Optional[str]) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    # Logs go to stderr so stdout carries only the analysis output
    setup_logger("layout_analyzer", level=level, log_file=log_file, stream=sys.stderr)
    setup_package_loggers(level=level, log_file=log_file, stream=sys.stderr)

    # Set pdfminer log level to WARNING to reduce verbosity
    logging.getLogger("pdfminer").setLevel(logging.WARNING)


def render(document: DocumentAnalysis, output_format: str) -> str:
    if output_format == "json":
        return json.dumps(document_to_dict(document), indent=2, ensure_ascii=False)
    if output_format == "text":
        return document.get_text()
    return document.get_markdown()


def run(args: argparse.Namespace) -> DocumentAnalysis:
    raw_config = load_config(args.config)
    analyzer_config = AnalyzerConfig.from_dict(raw_config)
    page_numbers = [n - 1 for n in args.pages] if args.pages else None

    input_path = Path(args.input_path)
    if not input_path.is_file():
        raise ValueError(f"Input path does not exist: {input_path}")

    if input_path.suffix.lower() == ".json":
        logger.debug(f"Loading fragments from {input_path}")
        pages = load_fragment_pages(str(input_path), args.page_width, args.page_height)
        document = analyze_pages(pages, analyzer_config, args.filter_headers_footers,
                                 page_numbers, quick=args.quick)
        if args.visualize:
            logger.warning("--visualize needs a PDF input, skipping visualization")
        return document

    if input_path.suffix.lower() != ".pdf":
        raise ValueError(f"Input file is neither a PDF nor a JSON fragment file: {input_path}")

    extractor = PDFTextExtractor(PDFMinerConfig.from_dict(raw_config.get("pdfminer")))
    document = process_pdf(str(input_path), analyzer_config, args.filter_headers_footers,
                           page_numbers, extractor=extractor, quick=args.quick)
    if args.visualize:
        from visualization.visualize_boxes import draw_document_layout
        draw_document_layout(str(input_path), document)
    return document


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    configure_logging(args.verbose, args.log_file)

    try:
        document = run(args)
        output = render(document, args.format)
        if args.output:
            if args.format == "json":
                save_json(document_to_dict(document), args.output)
            else:
                output_path = Path(args.output)
                output_path.parent.mkdir(parents=True, exist_ok=True)
                output_path.write_text(output, encoding="utf-8")
            logger.info(f"Saved {args.format} output to {args.output}")
        else:
            sys.stdout.write(output)
            if not output.endswith("\n"):
                sys.stdout.write("\n")
    except Exception as e:
        logger.error(f"Error processing {args.input_path}: {str(e)}", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

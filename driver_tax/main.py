"""Command-line entry point: classify driver tax documents and build the filing summary."""

import argparse
from pathlib import Path
from typing import List, Optional

from .classifier import score_all
from .config_loader import EngineConfig, load_config
from .document_parser import DocumentParser
from .document_processor import DocumentProcessor
from .models import ProcessingResult
from .tax_package import assemble_package, export_csv, fmt, generate_text_report


# Sample documents used by --demo
DEMO_DOCUMENTS = [
    ("uber_annual_2025.txt", """
UBER RIDES - GROSS FARES BREAKDOWN
This section indicates the fees you have charged to Riders.
GST you collected from Riders CA$1,505.00
QST you collected from Riders CA$3,002.50
Total CA$30,100.00

UBER RIDES - FEES BREAKDOWN
This section indicates the fees you have paid to Uber.
Total CA$7,525.00

UBER EATS - GROSS FARES BREAKDOWN
Total CA$4,200.00

OTHER POTENTIAL DEDUCTIONS
Online Mileage 18,450 km

Tax summary for the period 2025
"""),
    ("t4_2025.txt", """
Statement of Remuneration Paid
T4 - 2025
Employer: Metro Courier Inc.
Box 14: Employment income $18,500.00
Box 16: CPP contributions $929.00
Box 18: EI premiums $303.40
Box 22: Income tax deducted $1,850.00
"""),
    ("shell_receipt.txt", """
Shell
Gasoline - Regular
45.120 L
Total: $72.18
Date: 2025-03-14
"""),
    ("midas_invoice.txt", """
Midas
Brake Service
Parts: $220.00
Labour: $180.00
Total: $400.00
Date: 2025-06-02
"""),
    ("telus_bill.txt", """
TELUS Mobility - Wireless
Billing Period: May 1 - May 31, 2025
Data Usage: 12.5 GB
Total Amount Due: $85.00
"""),
    ("tim_hortons.txt", """
Tim Hortons
Subtotal: $14.20
Tax: $2.13
Total: $16.33
Date: 2025-04-09
"""),
]


def scan_local_folder(folder_path: str) -> List[str]:
    """Recursively scan a local folder for slips, summaries and receipts."""
    files = []
    folder = Path(folder_path)

    if not folder.exists():
        print(f"Error: Folder not found: {folder_path}")
        return files

    print(f"\nScanning folder: {folder_path}")
    for file_path in sorted(folder.rglob('*')):
        if file_path.is_file() and file_path.suffix.lower() in DocumentParser.supported_extensions():
            files.append(str(file_path))
            print(f"  Found: {file_path.relative_to(folder)}")

    print(f"\nTotal files found: {len(files)}")
    return files


def print_result(result: ProcessingResult) -> None:
    """Print one document's classification, fields and category."""
    name = result.source_file or "<text>"
    print(f"\n  {name}")
    print(f"    Type:       {result.document_type.value} ({result.confidence}% confidence, "
          f"checks {result.validation.confidence}%)")
    if result.error:
        print(f"    Error:      {result.error}")
    for key, value in result.fields.items():
        print(f"    {key:<22} {value}")
    if result.category is not None:
        record = result.category
        print(f"    Category:   {record.type.value}/{record.category}  amount={fmt(record.amount)}")
        if not record.is_income:
            print(f"    Deductible: {fmt(record.deductible_amount)} "
                  f"({record.business_use_percent:.0f}% business use)")
    for warning in result.warnings:
        print(f"    WARNING: {warning}")


def run_documents(results: List[ProcessingResult], config: EngineConfig,
                  donations: float = 0.0, csv_path: Optional[str] = None) -> None:
    print("\n" + "-" * 60)
    print("  DOCUMENTS")
    print("-" * 60)
    for result in results:
        print_result(result)

    records = [r.category for r in results if r.category is not None]
    package = assemble_package(records, config, donations)
    print()
    print(generate_text_report(package))

    if csv_path:
        export_csv(package, csv_path)
        print(f"\nWrote {csv_path}")


def run_demo(config: EngineConfig, csv_path: Optional[str] = None):
    """Process the bundled sample documents."""
    print("\n" + "=" * 72)
    print("  RUNNING DEMO - Quebec rideshare driver")
    print("=" * 72)
    processor = DocumentProcessor(config=config)
    results = processor.process_batch([(text, name) for name, text in DEMO_DOCUMENTS])
    run_documents(results, config, donations=1_000.0, csv_path=csv_path)
    return results


def classify_text(text: str) -> None:
    """Print the score table and the processed result for one string."""
    processor = DocumentProcessor()
    scores = score_all(text, processor.registry)
    print("\n  Scores:")
    for document_type, score in sorted(scores.items(), key=lambda kv: -kv[1]):
        if score:
            print(f"    {document_type.value:<22} {score:>3}")
    print_result(processor.process_text(text))


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Driver Tax - classify rideshare/taxi tax documents and summarize T2125 / TP-80-V"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML driver profile"
    )
    parser.add_argument(
        "--files", nargs="+",
        help="Local file paths to process (PDF, images, text, CSV, Excel)"
    )
    parser.add_argument(
        "--local-folder",
        help="Local folder path to scan recursively for tax documents"
    )
    parser.add_argument(
        "--text",
        help="Classify and extract a single document given as a string"
    )
    parser.add_argument(
        "--csv",
        default=None,
        help="Write the filing summary to this CSV file"
    )
    parser.add_argument(
        "--donations",
        type=float, default=0.0,
        help="Total charitable donations for the year"
    )
    parser.add_argument(
        "--demo", action="store_true",
        help="Run with bundled sample documents"
    )

    args = parser.parse_args()

    if args.text is not None:
        classify_text(args.text)
        return

    config = None
    if args.config:
        config = load_config(args.config)
        if config:
            print(f"\nLoaded config: {args.config}")
            print(f"  Driver: {config.taxpayer_name}")
            print(f"  Province: {config.province}")
            print(f"  Tax year: {config.tax_year}")
    config = config or EngineConfig()

    if args.demo:
        run_demo(config, args.csv)
        return

    files = list(args.files or [])
    folder = args.local_folder or config.document_folder
    if folder:
        files.extend(scan_local_folder(folder))
    if not files:
        parser.error("no documents given; use --files, --local-folder, --text or --demo")

    processor = DocumentProcessor(config=config)
    results = processor.process_files(files)
    run_documents(results, config, args.donations, args.csv)


if __name__ == "__main__":
    main()

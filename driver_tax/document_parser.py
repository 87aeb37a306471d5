"""Turn slips, statements and receipts (PDF, images, text, CSV/Excel) into plain text."""

import os
import re
import warnings
import logging
from pathlib import Path
from typing import List, Optional
from dataclasses import dataclass

import pdfplumber

# Suppress noisy PDF font warnings (missing FontBBox in descriptor)
for _name in ("pdfminer", "pdfminer.six", "pdfplumber"):
    logging.getLogger(_name).setLevel(logging.ERROR)
import pytesseract
from PIL import Image
import pandas as pd


@dataclass
class ParsedDocument:
    """Container for parsed document content."""
    file_path: str
    file_type: str
    text_content: str
    raw_data: Optional[pd.DataFrame] = None  # For CSV/Excel files


class DocumentParser:
    """Read documents from disk and produce text for classification."""

    TEXT_EXTENSIONS = {'.txt'}
    PDF_EXTENSIONS = {'.pdf'}
    IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.tiff', '.tif', '.bmp', '.heic'}
    SPREADSHEET_EXTENSIONS = {'.csv', '.xlsx', '.xls'}

    # Below this many characters per page a PDF is treated as scanned and OCR'd
    MIN_TEXT_PER_PAGE = 50

    def __init__(self, tesseract_path: Optional[str] = None, ocr_language: str = "eng+fra"):
        """
        Initialize the document parser.

        Args:
            tesseract_path: Path to Tesseract executable (if not in PATH)
            ocr_language: Tesseract language codes; Quebec slips are bilingual
        """
        if tesseract_path:
            pytesseract.pytesseract.tesseract_cmd = tesseract_path
        self.ocr_language = ocr_language

    @classmethod
    def supported_extensions(cls) -> set:
        return (cls.TEXT_EXTENSIONS | cls.PDF_EXTENSIONS
                | cls.IMAGE_EXTENSIONS | cls.SPREADSHEET_EXTENSIONS)

    def parse(self, file_path: str) -> ParsedDocument:
        """
        Parse a document and extract its text.

        Args:
            file_path: Path to the document file

        Returns:
            ParsedDocument containing extracted text

        Raises:
            ValueError: for an unsupported file extension
        """
        extension = Path(file_path).suffix.lower()

        if extension in self.TEXT_EXTENSIONS:
            return self._parse_text(file_path)
        elif extension in self.PDF_EXTENSIONS:
            return self._parse_pdf(file_path)
        elif extension in self.IMAGE_EXTENSIONS:
            return self._parse_image(file_path)
        elif extension in self.SPREADSHEET_EXTENSIONS:
            return self._parse_spreadsheet(file_path)
        else:
            raise ValueError(f"Unsupported file type: {extension}")

    def _parse_text(self, file_path: str) -> ParsedDocument:
        with open(file_path, "r", encoding="utf-8", errors="replace") as f:
            text_content = f.read()
        return ParsedDocument(file_path=file_path, file_type='text', text_content=text_content)

    def _parse_pdf(self, file_path: str) -> ParsedDocument:
        """
        Parse a PDF, falling back to OCR when the text layer is thin or missing.

        Platform tax summaries are usually text PDFs; slips scanned by an
        employer are often image-only.
        """
        with warnings.catch_warnings():
            warnings.filterwarnings("ignore", message=".*[Ff]ont[Bb]ox.*")
            with pdfplumber.open(file_path) as pdf:
                num_pages = max(len(pdf.pages), 1)
                pages = [page.extract_text() or '' for page in pdf.pages]
        text_content = '\n\n'.join(pages)

        if len(text_content.strip()) < self.MIN_TEXT_PER_PAGE * num_pages:
            ocr_text = self._ocr_pdf(file_path)
            if ocr_text.strip():
                text_content = ocr_text

        return ParsedDocument(
            file_path=file_path,
            file_type='pdf',
            text_content=OCREnhancer.correct_text(text_content),
        )

    def _ocr_pdf(self, file_path: str) -> str:
        """Render each PDF page as an image and run Tesseract OCR on it."""
        parts = []
        with pdfplumber.open(file_path) as pdf:
            for page in pdf.pages:
                image = page.to_image(resolution=300).original
                ocr_text = pytesseract.image_to_string(image, lang=self.ocr_language)
                if ocr_text:
                    parts.append(ocr_text)
        return '\n\n'.join(parts)

    def _parse_image(self, file_path: str) -> ParsedDocument:
        """
        Parse a receipt photo or scanned slip using OCR.

        Args:
            file_path: Path to the image file

        Returns:
            ParsedDocument with OCR-extracted text
        """
        image = Image.open(file_path)

        # Tesseract does best on RGB input
        if image.mode != 'RGB':
            image = image.convert('RGB')

        text_content = pytesseract.image_to_string(image, lang=self.ocr_language)

        return ParsedDocument(
            file_path=file_path,
            file_type='image',
            text_content=OCREnhancer.correct_text(text_content),
        )

    def _parse_spreadsheet(self, file_path: str) -> ParsedDocument:
        """
        Parse a CSV or Excel export (e.g. a platform earnings download).

        Args:
            file_path: Path to the spreadsheet file

        Returns:
            ParsedDocument with the sheet rendered as text
        """
        extension = Path(file_path).suffix.lower()

        if extension == '.csv':
            # Read without header to handle key-value format CSVs
            df = pd.read_csv(file_path, header=None)
        else:  # Excel
            df = pd.read_excel(file_path, header=None)

        text_content = '\n'.join(
            ' '.join(str(v) for v in row if pd.notna(v))
            for row in df.itertuples(index=False)
        )

        return ParsedDocument(
            file_path=file_path,
            file_type='spreadsheet',
            text_content=text_content,
            raw_data=df
        )

    def parse_multiple(self, file_paths: List[str]) -> List[ParsedDocument]:
        """
        Parse multiple documents, skipping (and reporting) the ones that fail.

        Args:
            file_paths: List of file paths to parse

        Returns:
            List of ParsedDocument objects
        """
        results = []
        for file_path in file_paths:
            try:
                results.append(self.parse(file_path))
                print(f"Successfully parsed: {os.path.basename(file_path)}")
            except (OSError, ValueError) as e:
                print(f"Error parsing {os.path.basename(file_path)}: {e}")
        return results


class OCREnhancer:
    """Fix OCR misreads common on Canadian slips and receipts."""

    COMMON_CORRECTIONS = {
        'T4 A': 'T4A',
        'RL-l': 'RL-1',
        'RL-I': 'RL-1',
        'Relevé l': 'Relevé 1',
        'Releve 1': 'Relevé 1',
    }

    @classmethod
    def correct_text(cls, text: str) -> str:
        """
        Apply common corrections to OCR text.

        Args:
            text: Raw OCR text

        Returns:
            Corrected text
        """
        corrected = text
        for wrong, right in cls.COMMON_CORRECTIONS.items():
            corrected = corrected.replace(wrong, right)
        # "$1 250,00" style French amounts -> "$1,250.00"
        corrected = re.sub(r"(\d{1,3}) (\d{3}),(\d{2})\b", r"\1,\2.\3", corrected)
        return corrected

import logging
from pathlib import Path
from typing import List, Dict, Any, Tuple

import mammoth
import pytesseract
from PIL import Image

try:
    import PyPDF2
except ImportError:
    PyPDF2 = None

try:
    from pdf2image import convert_from_path
except ImportError:
    convert_from_path = None


TEXT_EXTENSIONS = ['.txt', '.md']
WORD_EXTENSIONS = ['.docx', '.doc']
IMAGE_EXTENSIONS = ['.png', '.jpg', '.jpeg', '.tiff', '.bmp']


class UnsupportedDocumentError(Exception):
    """Raised when a file type has no text extraction strategy."""


class DocumentReadError(Exception):
    """Raised when a supported document yields no usable text."""


class Document:
    """A simple data class to hold document information."""
    def __init__(self, path: Path, text: str, method: str):
        self.path = path
        self.text = text
        self.method = method  # e.g., "pdf_text", "ocr", "text_file", "docx_text"

    def __repr__(self):
        return f"Document(path={self.path.name}, text_length={len(self.text)}, method='{self.method}')"


class DocumentIngester:
    """
    Extracts raw text from monthly report documents.

    PDFs are read with PyPDF2 first and fall back to OCR when the text layer
    is too thin, Word files go through mammoth, plain text is read directly.
    """
    def __init__(self, config: Dict[str, Any]):
        """
        Initializes the DocumentIngester with the pipeline's configuration.

        Args:
            config: The configuration dictionary, typically loaded from config.yaml.
        """
        self.config = config.get('ingestion', {})
        self.logger = logging.getLogger(__name__)

        tesseract_path = self.config.get('ocr', {}).get('tesseract_path')
        if tesseract_path:
            pytesseract.pytesseract.tesseract_cmd = tesseract_path
            self.logger.info(f"Set Tesseract command path to: {tesseract_path}")

    @property
    def supported_extensions(self) -> List[str]:
        return self.config.get('supported_extensions', TEXT_EXTENSIONS + ['.pdf'] + WORD_EXTENSIONS + IMAGE_EXTENSIONS)

    def ingest_file(self, doc_path: Path) -> Document:
        """
        Extracts text from a single document based on its file type.

        Raises:
            UnsupportedDocumentError: The extension is not handled.
            DocumentReadError: The file is too large or no text could be extracted.
        """
        doc_path = Path(doc_path)
        suffix = doc_path.suffix.lower()
        if suffix not in self.supported_extensions:
            raise UnsupportedDocumentError(f"Unsupported file type: {suffix or '(none)'} ({doc_path.name})")

        max_size_mb = self.config.get('max_file_size_mb', 50)
        if doc_path.stat().st_size > max_size_mb * 1024 * 1024:
            raise DocumentReadError(f"{doc_path.name} is larger than {max_size_mb}MB")

        self.logger.debug(f"Processing file: {doc_path.name}")
        if suffix in TEXT_EXTENSIONS:
            text, method = self._extract_from_text_file(doc_path)
        elif suffix == '.pdf':
            text, method = self._extract_from_pdf(doc_path)
        elif suffix in WORD_EXTENSIONS:
            text, method = self._extract_from_word(doc_path)
        else:
            text, method = self._extract_from_image(doc_path)

        if not text.strip():
            raise DocumentReadError(f"No text extracted from {doc_path.name} using method '{method}'")

        self.logger.info(f"Extracted {len(text)} characters from {doc_path.name} ({method}).")
        return Document(path=doc_path, text=text, method=method)

    def ingest_directory(self, input_directory: Path) -> List[Document]:
        """
        Finds all supported documents in the directory tree and extracts their text.
        Files that fail are logged and skipped.
        """
        self.logger.info(f"Starting ingestion process for directory: {input_directory}")
        document_paths = [p for p in sorted(Path(input_directory).rglob('*'))
                          if p.is_file() and p.suffix.lower() in self.supported_extensions]
        self.logger.info(f"Found {len(document_paths)} supported documents to process.")

        documents = []
        for doc_path in document_paths:
            try:
                documents.append(self.ingest_file(doc_path))
            except Exception as e:
                self.logger.error(f"Failed to process {doc_path.name}: {e}", exc_info=True)

        self.logger.info(f"Successfully ingested {len(documents)} documents.")
        return documents

    def _extract_from_text_file(self, doc_path: Path) -> Tuple[str, str]:
        return doc_path.read_text(encoding='utf-8', errors='ignore'), "text_file"

    def _extract_from_word(self, doc_path: Path) -> Tuple[str, str]:
        """Reads the raw text of a Word document with mammoth."""
        try:
            with open(doc_path, "rb") as f:
                result = mammoth.extract_raw_text(f)
        except Exception as e:
            raise DocumentReadError(f"Could not read Word document {doc_path.name}: {e}") from e
        for message in result.messages:
            self.logger.debug(f"mammoth: {message}")
        return result.value, "docx_text"

    def _ocr_pages(self, pages, source_name: str) -> str:
        """Runs Tesseract over each page image and joins the results."""
        texts = []
        for number, page in enumerate(pages, start=1):
            self.logger.debug(f"OCR on page {number} of {source_name}")
            texts.append(pytesseract.image_to_string(page))
        return "\n".join(texts)

    def _extract_from_image(self, doc_path: Path) -> Tuple[str, str]:
        try:
            with Image.open(doc_path) as img:
                return self._ocr_pages([img], doc_path.name), "ocr"
        except Exception as e:
            raise DocumentReadError(f"OCR failed for image {doc_path.name}: {e}") from e

    def _extract_from_pdf(self, doc_path: Path) -> Tuple[str, str]:
        """
        Reads the PDF text layer and, for scanned reports whose layer holds no
        more than ``min_pdf_text_chars`` characters, renders the pages for OCR.
        The longer of the two results is kept.
        """
        if not PyPDF2:
            raise DocumentReadError("PyPDF2 is not installed. Cannot process PDFs.")

        text = ""
        try:
            with open(doc_path, "rb") as f:
                text = " ".join(page.extract_text() or "" for page in PyPDF2.PdfReader(f).pages)
        except Exception as e:
            self.logger.warning(f"Could not read the text layer of {doc_path.name}: {e}")

        if len(text.strip()) > self.config.get('min_pdf_text_chars', 150):
            return text, "pdf_text"

        ocr_config = self.config.get('ocr', {})
        if not ocr_config.get('enabled', True):
            return text, "pdf_text"
        if not convert_from_path:
            self.logger.error("pdf2image is not installed; scanned PDFs cannot be OCR'd.")
            return text, "ocr_failed"

        self.logger.info(f"{doc_path.name} has little embedded text, running OCR.")
        try:
            pages = convert_from_path(doc_path, dpi=ocr_config.get('resolution_dpi', 300))
            ocr_text = self._ocr_pages(pages, doc_path.name)
        except Exception as e:
            self.logger.error(f"OCR failed for {doc_path.name}: {e}")
            return text, "ocr_failed"

        if len(ocr_text.strip()) > len(text.strip()):
            return ocr_text, "ocr"
        return text, "pdf_text"

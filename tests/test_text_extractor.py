import unittest
from io import BytesIO
from zipfile import ZipFile

from resume_analyzer.core.errors import ExtractionError
from resume_analyzer.schemas.upload import UploadedFile
from resume_analyzer.services.text_extractor import (
    UNREADABLE_TEXT,
    TextExtractor,
    parse_binary_document,
    placeholder_description,
)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _minimal_docx(*paragraphs: str) -> bytes:
    body = "".join(f"<w:p><w:r><w:t>{text}</w:t></w:r></w:p>" for text in paragraphs)
    document = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
        f"<w:body>{body}</w:body></w:document>"
    )
    buffer = BytesIO()
    with ZipFile(buffer, "w") as archive:
        archive.writestr("word/document.xml", document)
    return buffer.getvalue()


class TextExtractorTests(unittest.TestCase):
    def setUp(self):
        self.extractor = TextExtractor()

    def test_plain_text_is_returned_verbatim(self):
        content = "Jane Doe\nSenior Data Engineer\n- Spark, Airflow, dbt\n"
        file = UploadedFile("resume.txt", "text/plain", content.encode("utf-8"))
        self.assertEqual(self.extractor.extract(file), content)

    def test_plain_text_with_charset_parameter_is_decoded(self):
        content = b"Jane Doe\nPython engineer"
        for mime_type in ("text/plain; charset=utf-8", "Text/Plain"):
            with self.subTest(mime_type=mime_type):
                file = UploadedFile("cv.txt", mime_type, content)
                self.assertEqual(self.extractor.extract(file), "Jane Doe\nPython engineer")

    def test_undecodable_text_degrades_to_sentinel(self):
        file = UploadedFile("resume.txt", "text/plain", b"\xff\xfe\xfa\x00broken")
        self.assertEqual(self.extractor.extract(file), UNREADABLE_TEXT)

    def test_empty_text_degrades_to_sentinel(self):
        file = UploadedFile("resume.txt", "text/plain", b"   \n")
        self.assertEqual(self.extractor.extract(file), UNREADABLE_TEXT)

    def test_binary_formats_get_placeholder_without_parser(self):
        for mime_type, name in (
            ("application/pdf", "cv.pdf"),
            ("application/msword", "cv.doc"),
            (DOCX_MIME, "cv.docx"),
        ):
            with self.subTest(mime_type=mime_type):
                text = self.extractor.extract(UploadedFile(name, mime_type, b"\x00\x01binary"))
                self.assertEqual(text, f"Resume file: {name}. Professional document uploaded for analysis.")

    def test_failing_parser_falls_back_to_placeholder(self):
        def broken_parser(file):
            raise ExtractionError("damaged")

        extractor = TextExtractor(binary_parser=broken_parser)
        file = UploadedFile("cv.pdf", "application/pdf", b"%PDF-1.4 garbage")
        self.assertEqual(extractor.extract(file), placeholder_description(file))

    def test_blank_parser_output_falls_back_to_placeholder(self):
        extractor = TextExtractor(binary_parser=lambda file: "  \n")
        file = UploadedFile("cv.pdf", "application/pdf", b"%PDF-1.4")
        self.assertEqual(extractor.extract(file), placeholder_description(file))

    def test_parser_output_is_used_when_available(self):
        extractor = TextExtractor(binary_parser=lambda file: "Parsed resume body")
        file = UploadedFile("cv.pdf", "application/pdf", b"%PDF-1.4")
        self.assertEqual(extractor.extract(file), "Parsed resume body")


class BinaryDocumentParserTests(unittest.TestCase):
    def test_docx_paragraphs_are_extracted(self):
        file = UploadedFile("cv.docx", DOCX_MIME, _minimal_docx("Jane Doe", "Python and SQL"))
        text = parse_binary_document(file)
        self.assertIn("Jane Doe", text)
        self.assertIn("Python and SQL", text)

    def test_docx_mime_parameters_are_ignored(self):
        file = UploadedFile("cv.docx", DOCX_MIME + "; charset=binary", _minimal_docx("Jane Doe"))
        self.assertIn("Jane Doe", parse_binary_document(file))

    def test_legacy_doc_is_not_parsed(self):
        file = UploadedFile("cv.doc", "application/msword", b"\xd0\xcf\x11\xe0")
        with self.assertRaises(ExtractionError):
            parse_binary_document(file)

    def test_damaged_pdf_raises_extraction_error(self):
        file = UploadedFile("cv.pdf", "application/pdf", b"not a pdf at all")
        with self.assertRaises(ExtractionError):
            parse_binary_document(file)

    def test_damaged_pdf_never_escapes_the_extractor(self):
        extractor = TextExtractor(binary_parser=parse_binary_document)
        file = UploadedFile("cv.pdf", "application/pdf", b"not a pdf at all")
        self.assertEqual(extractor.extract(file), placeholder_description(file))


if __name__ == "__main__":
    unittest.main()

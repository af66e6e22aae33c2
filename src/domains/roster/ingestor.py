# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bulk roster ingestion.

Turns an uploaded CSV or XLSX roster into validated student rows. The
upload is all-or-nothing: every row is checked and, if any row fails, the
whole file is rejected with the full list of row errors.

Row numbers are spreadsheet row numbers (the header is row 1), so they
line up with what the uploader sees in their editor even when blank rows
are skipped.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from openpyxl.utils.exceptions import InvalidFileException

from src.core.config.settings import ApplicationRulesSettings, UploadSettings
from src.domains.errors import InvalidInputError, RosterValidationError, RowError
from src.domains.student_validation import (
    StudentValidator,
    normalize_email,
    normalize_phone,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "email", "phone")
OPTIONAL_FIELDS = ("company", "position")

HEADER_SYNONYMS: dict[str, tuple[str, ...]] = {
    "name": ("name", "student name", "full name", "이름", "성명", "수강생명"),
    "email": ("email", "e-mail", "email address", "이메일", "이메일주소"),
    "phone": (
        "phone",
        "mobile",
        "phone number",
        "tel",
        "전화번호",
        "휴대폰",
        "휴대폰번호",
        "연락처",
    ),
    "company": ("company", "organization", "회사", "회사명", "소속"),
    "position": ("position", "title", "job title", "직급", "직책"),
}

TEMPLATE_HEADERS = ("name", "email", "phone", "company", "position")

TEMPLATE_MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def _header_key(value: Any) -> str:
    return "".join(str(value or "").lower().replace("_", " ").split())


_HEADER_LOOKUP: dict[str, str] = {
    _header_key(synonym): field
    for field, synonyms in HEADER_SYNONYMS.items()
    for synonym in synonyms
}


@dataclass(frozen=True)
class RosterRow:
    """A candidate student row read from a roster file."""

    row_number: int
    name: str
    email: str
    phone: str
    company: str | None = None
    position: str | None = None


@dataclass(frozen=True)
class ValidatedRosterRow:
    """A roster row whose identity and eligibility were confirmed."""

    row: RosterRow
    user_id: str
    name: str
    email: str
    phone: str


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _file_extension(filename: str) -> str:
    return Path(filename or "").suffix.lower()


def map_headers(header: Iterable[Any]) -> dict[str, int]:
    """Map a header row onto roster fields.

    Args:
        header: Header cells in column order.

    Returns:
        Field name to column index. The first matching column wins.

    Raises:
        InvalidInputError: If a required column is missing.
    """
    columns: dict[str, int] = {}
    for index, cell in enumerate(header):
        field = _HEADER_LOOKUP.get(_header_key(cell))
        if field and field not in columns:
            columns[field] = index

    missing = [f for f in REQUIRED_FIELDS if f not in columns]
    if missing:
        raise InvalidInputError(
            f"Roster is missing required column(s): {', '.join(missing)}",
            {"missing_columns": missing},
        )
    return columns


def _read_csv(content: bytes) -> Iterator[list[Any]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise InvalidInputError("CSV roster must be UTF-8 encoded") from e
    yield from csv.reader(io.StringIO(text))


def _read_xlsx(content: bytes) -> Iterator[list[Any]]:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError, ValueError) as e:
        raise InvalidInputError("Roster is not a readable XLSX workbook") from e
    try:
        if not workbook.worksheets:
            return
        for values in workbook.worksheets[0].iter_rows(values_only=True):
            yield list(values)
    finally:
        workbook.close()


def parse_roster(filename: str, content: bytes) -> list[RosterRow]:
    """Parse a roster file into candidate rows.

    Blank rows are skipped. Cell values are trimmed but not otherwise
    normalized; normalization happens during validation.

    Args:
        filename: Original filename, used to pick the parser.
        content: Raw file bytes.

    Returns:
        Candidate rows in file order.

    Raises:
        InvalidInputError: On unsupported format, unreadable content or
            missing required columns.
    """
    extension = _file_extension(filename)
    if extension == ".csv":
        records = _read_csv(content)
    elif extension == ".xlsx":
        records = _read_xlsx(content)
    else:
        raise InvalidInputError(
            f"Unsupported roster format: {extension or filename}",
            {"allowed_extensions": [".csv", ".xlsx"]},
        )

    columns: dict[str, int] | None = None
    rows: list[RosterRow] = []
    for row_number, record in enumerate(records, start=1):
        cells = [_cell_text(v) for v in record]
        if not any(cells):
            continue
        if columns is None:
            columns = map_headers(cells)
            continue

        def cell(field: str) -> str:
            index = columns.get(field)
            return cells[index] if index is not None and index < len(cells) else ""

        rows.append(
            RosterRow(
                row_number=row_number,
                name=cell("name"),
                email=cell("email"),
                phone=cell("phone"),
                company=cell("company") or None,
                position=cell("position") or None,
            )
        )

    if columns is None:
        raise InvalidInputError("Roster file is empty")
    return rows


def build_template(fmt: str = "xlsx") -> tuple[bytes, str, str]:
    """Build an empty roster template.

    Args:
        fmt: ``xlsx`` or ``csv``.

    Returns:
        Tuple of (content, media type, filename).

    Raises:
        InvalidInputError: On an unknown format.
    """
    fmt = (fmt or "").lower()
    if fmt == "csv":
        buffer = io.StringIO()
        csv.writer(buffer).writerow(TEMPLATE_HEADERS)
        # BOM so spreadsheet apps detect UTF-8
        content = ("\ufeff" + buffer.getvalue()).encode("utf-8")
        return content, TEMPLATE_MEDIA_TYPES["csv"], "class_application_roster_template.csv"

    if fmt == "xlsx":
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "Roster"
        sheet.append(list(TEMPLATE_HEADERS))
        for cell in sheet[1]:
            cell.font = Font(bold=True)
        for column in ("A", "B", "C", "D", "E"):
            sheet.column_dimensions[column].width = 24
        buffer = io.BytesIO()
        workbook.save(buffer)
        return (
            buffer.getvalue(),
            TEMPLATE_MEDIA_TYPES["xlsx"],
            "class_application_roster_template.xlsx",
        )

    raise InvalidInputError(f"Unknown template format: {fmt}", {"allowed": ["xlsx", "csv"]})


class RosterIngestor:
    """Parses and validates bulk rosters.

    Attributes:
        validator: Identity and eligibility checks.
        rules: Bulk floor and row ceiling.
        upload: Accepted extensions and size limit.
    """

    def __init__(
        self,
        validator: StudentValidator,
        rules: ApplicationRulesSettings,
        upload: UploadSettings,
    ) -> None:
        self.validator = validator
        self.rules = rules
        self.upload = upload

    def check_file(self, filename: str, content: bytes) -> None:
        """Reject files with a disallowed extension, too large, or empty.

        Raises:
            InvalidInputError: If the file is not acceptable.
        """
        extension = _file_extension(filename)
        if extension not in self.upload.allowed_extensions:
            raise InvalidInputError(
                f"Unsupported roster format: {extension or filename}",
                {"allowed_extensions": self.upload.allowed_extensions},
            )
        if not content:
            raise InvalidInputError("Roster file is empty")
        if len(content) > self.upload.max_file_size_bytes:
            raise InvalidInputError(
                f"Roster file exceeds {self.upload.max_file_size_mb} MB",
                {"max_file_size_mb": self.upload.max_file_size_mb},
            )

    def parse(self, filename: str, content: bytes) -> list[RosterRow]:
        """Parse a file and enforce the row floor and ceiling.

        Raises:
            InvalidInputError: On a bad file or a row count out of range.
        """
        self.check_file(filename, content)
        rows = parse_roster(filename, content)

        floor = self.rules.bulk_student_floor
        ceiling = self.rules.bulk_max_rows
        if len(rows) < floor:
            raise InvalidInputError(
                f"Bulk rosters need at least {floor} students; file has {len(rows)}. "
                f"Add fewer students individually instead.",
                {"row_count": len(rows), "minimum": floor},
            )
        if len(rows) > ceiling:
            raise InvalidInputError(
                f"Bulk rosters are limited to {ceiling} students; file has {len(rows)}",
                {"row_count": len(rows), "maximum": ceiling},
            )
        return rows

    async def ingest(
        self,
        filename: str,
        content: bytes,
        course_id: str,
        schedule_id: str,
    ) -> list[ValidatedRosterRow]:
        """Parse and validate a roster for one course line.

        Args:
            filename: Original filename.
            content: Raw file bytes.
            course_id: Course the roster is for.
            schedule_id: Schedule the roster is for.

        Returns:
            Validated rows in file order.

        Raises:
            InvalidInputError: On a bad file or a row count out of range.
            RosterValidationError: If any row fails, listing every failure.
        """
        rows = self.parse(filename, content)

        validated: list[ValidatedRosterRow] = []
        errors: list[RowError] = []
        seen_emails: dict[str, int] = {}

        for row in rows:
            email = normalize_email(row.email)
            missing = [f for f in REQUIRED_FIELDS if not getattr(row, f)]
            if missing:
                errors.append(
                    RowError(
                        row_number=row.row_number,
                        email=email or None,
                        reason="missing_field",
                        message=f"Missing required field(s): {', '.join(missing)}",
                    )
                )
                continue

            if email in seen_emails:
                errors.append(
                    RowError(
                        row_number=row.row_number,
                        email=email,
                        reason="duplicate_email",
                        message=f"Email already listed on row {seen_emails[email]}",
                    )
                )
                continue
            seen_emails[email] = row.row_number

            identity = await self.validator.validate(row.name, email, row.phone)
            if not identity.valid:
                errors.append(
                    RowError(
                        row_number=row.row_number,
                        email=email,
                        reason=identity.reason or "invalid",
                        message=identity.error or "Student validation failed",
                    )
                )
                continue

            eligibility = await self.validator.check_eligibility(
                identity.user_id, course_id, schedule_id
            )
            if not eligibility.eligible:
                errors.append(
                    RowError(
                        row_number=row.row_number,
                        email=email,
                        reason=eligibility.reason or "ineligible",
                        message=eligibility.error or "Student is not eligible",
                    )
                )
                continue

            validated.append(
                ValidatedRosterRow(
                    row=row,
                    user_id=identity.user_id,
                    name=row.name.strip(),
                    email=email,
                    phone=normalize_phone(row.phone),
                )
            )

        if errors:
            logger.info(
                "Roster rejected: file=%s, rows=%s, invalid=%s",
                filename,
                len(rows),
                len(errors),
            )
            raise RosterValidationError(errors)

        logger.info("Roster validated: file=%s, rows=%s", filename, len(validated))
        return validated

"""gspread-backed worksheet used by the attendance ledger."""

import logging
from typing import List, Optional

import gspread
from gspread.utils import rowcol_to_a1

from app.integrations.ledger import HEADER

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


class GoogleSheetsBackend:
    """First worksheet of one spreadsheet, opened lazily with service-account credentials."""

    def __init__(
        self,
        spreadsheet_id: str,
        service_account_email: Optional[str],
        private_key: Optional[str],
        worksheet_title: str = "Attendance",
    ) -> None:
        if not service_account_email or not private_key:
            raise ValueError("GOOGLE_SERVICE_ACCOUNT_EMAIL and GOOGLE_PRIVATE_KEY are required for the ledger")
        self.spreadsheet_id = spreadsheet_id
        self.worksheet_title = worksheet_title
        self._credentials = {
            "type": "service_account",
            "client_email": service_account_email,
            # Keys pasted into env files usually carry literal "\n"
            "private_key": private_key.replace("\\n", "\n"),
            "token_uri": TOKEN_URI,
        }
        self._worksheet: Optional[gspread.Worksheet] = None

    def _open(self) -> gspread.Worksheet:
        if self._worksheet is None:
            client = gspread.service_account_from_dict(self._credentials, scopes=SCOPES)
            spreadsheet = client.open_by_key(self.spreadsheet_id)
            worksheets = spreadsheet.worksheets()
            if worksheets:
                self._worksheet = worksheets[0]
            else:
                self._worksheet = spreadsheet.add_worksheet(
                    title=self.worksheet_title, rows=1000, cols=len(HEADER)
                )
                logger.info("Created worksheet %r in spreadsheet %s", self.worksheet_title, self.spreadsheet_id)
        return self._worksheet

    def get_all_values(self) -> List[List[str]]:
        return self._open().get_all_values()

    def write_row(self, row_number: int, values: List[str]) -> None:
        worksheet = self._open()
        if row_number > worksheet.row_count:
            worksheet.add_rows(row_number - worksheet.row_count)
        range_name = f"{rowcol_to_a1(row_number, 1)}:{rowcol_to_a1(row_number, len(values))}"
        # raw=True keeps "05-03-2026" a string; a parsed date would break exact-match lookups
        worksheet.update(range_name=range_name, values=[values], raw=True)

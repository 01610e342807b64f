#!/usr/bin/env python3
"""
Document Settings
Page geometry, layout constants and the company letterhead profile.
"""

import os
from dataclasses import dataclass

# Page geometry (millimetres, A4 portrait)
PAGE_WIDTH = 210.0
PAGE_HEIGHT = 297.0
TOP_MARGIN = 20.0
BOTTOM_MARGIN = 20.0
LEFT_MARGIN = 20.0
RIGHT_MARGIN = 20.0

# Text flow
LINE_HEIGHT = 6.0
BASE_ROW_HEIGHT = 8.0
BODY_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
ITALIC_FONT = "Helvetica-Oblique"
BODY_SIZE = 9
SECTION_TITLE_SIZE = 12

# Conservative heights used before a block is drawn
SECTION_HEADER_SPACE = 30.0
SIGNATURE_TABLE_SPACE = 50.0

# Fixed GST rate
GST_RATE = 0.10

# Character budgets for truncated (non-wrapping) columns
TIMESHEET_STAFF_CHARS = 18
TIMESHEET_NOTE_CHARS = 32
COMPLIANCE_DOCUMENT_CHARS = 28
COMPLIANCE_NAME_CHARS = 18
COMPLIANCE_OCCUPATION_CHARS = 18

DEFAULT_OUTPUT_DIR = os.getenv("DOCUMENT_OUTPUT_DIR", "outputs")


@dataclass(frozen=True)
class CompanyProfile:
    """Letterhead and registration details printed on customer-facing documents."""
    trading_name: str = "MJR - BUILDERS"
    abn: str = "36 674 122 866"
    telephone: str = "0459 200 766"
    street_address: str = "T2/3 131 Main rd Moonah 7009"
    email: str = "Admin@mjrbuilders.com.au"
    legal_name: str = "MJR-Builders Pty Limited"
    acn: str = "674 122 866"
    licence_number: str = "cc6163t"
    director: str = "Will Scott"
    brand: str = "BuildFlow Pro"

    @classmethod
    def from_env(cls) -> "CompanyProfile":
        """Build a profile, letting BUILDER_* environment variables override defaults."""
        defaults = cls()
        return cls(
            trading_name=os.getenv("BUILDER_TRADING_NAME", defaults.trading_name),
            abn=os.getenv("BUILDER_ABN", defaults.abn),
            telephone=os.getenv("BUILDER_TELEPHONE", defaults.telephone),
            street_address=os.getenv("BUILDER_ADDRESS", defaults.street_address),
            email=os.getenv("BUILDER_EMAIL", defaults.email),
            legal_name=os.getenv("BUILDER_LEGAL_NAME", defaults.legal_name),
            acn=os.getenv("BUILDER_ACN", defaults.acn),
            licence_number=os.getenv("BUILDER_LICENCE", defaults.licence_number),
            director=os.getenv("BUILDER_DIRECTOR", defaults.director),
            brand=os.getenv("BUILDER_BRAND", defaults.brand),
        )

"""State name to code mapping used by the area acceptance check."""

from typing import Optional

STATE_NAME_TO_CODE = {
    "ALABAMA": "AL",
    "ALASKA": "AK",
    "ARIZONA": "AZ",
    "ARKANSAS": "AR",
    "CALIFORNIA": "CA",
    "COLORADO": "CO",
    "CONNECTICUT": "CT",
    "DELAWARE": "DE",
    "DISTRICT OF COLUMBIA": "DC",
    "FLORIDA": "FL",
    "GEORGIA": "GA",
    "HAWAII": "HI",
    "IDAHO": "ID",
    "ILLINOIS": "IL",
    "INDIANA": "IN",
    "IOWA": "IA",
    "KANSAS": "KS",
    "KENTUCKY": "KY",
    "LOUISIANA": "LA",
    "MAINE": "ME",
    "MARYLAND": "MD",
    "MASSACHUSETTS": "MA",
    "MICHIGAN": "MI",
    "MINNESOTA": "MN",
    "MISSISSIPPI": "MS",
    "MISSOURI": "MO",
    "MONTANA": "MT",
    "NEBRASKA": "NE",
    "NEVADA": "NV",
    "NEW HAMPSHIRE": "NH",
    "NEW JERSEY": "NJ",
    "NEW MEXICO": "NM",
    "NEW YORK": "NY",
    "NORTH CAROLINA": "NC",
    "NORTH DAKOTA": "ND",
    "OHIO": "OH",
    "OKLAHOMA": "OK",
    "OREGON": "OR",
    "PENNSYLVANIA": "PA",
    "PUERTO RICO": "PR",
    "RHODE ISLAND": "RI",
    "SOUTH CAROLINA": "SC",
    "SOUTH DAKOTA": "SD",
    "TENNESSEE": "TN",
    "TEXAS": "TX",
    "UTAH": "UT",
    "VERMONT": "VT",
    "VIRGINIA": "VA",
    "WASHINGTON": "WA",
    "WEST VIRGINIA": "WV",
    "WISCONSIN": "WI",
    "WYOMING": "WY",
}

VALID_STATE_CODES = frozenset(STATE_NAME_TO_CODE.values())

CODE_TO_STATE_NAME = {code: name for name, code in STATE_NAME_TO_CODE.items()}


def normalize_state_to_code(state_str: Optional[str]) -> str:
    """
    Normalize a state string to a 2-letter state code.

    Args:
        state_str: State name or code, e.g. "Florida", "FL", "fl."

    Returns:
        2-letter state code, or empty string if unrecognizable
    """
    if not state_str:
        return ""

    state_clean = " ".join(state_str.strip().upper().replace(".", "").split())
    if state_clean in VALID_STATE_CODES:
        return state_clean
    return STATE_NAME_TO_CODE.get(state_clean, "")


def state_name(state_code: str) -> str:
    """Title-cased state name for a code ("FL" -> "Florida")."""
    name = CODE_TO_STATE_NAME.get(state_code.upper(), "")
    return name.title()


def text_mentions_state(text: Optional[str], state_code: str) -> bool:
    """Check whether free text names a state, in full or as a comma segment code.

    Matches "..., Tampa, Florida, United States" and "..., Tampa, FL 33602".

    Args:
        text: Display or formatted address
        state_code: 2-letter code to look for

    Returns:
        True if the state is mentioned
    """
    if not text:
        return False

    code = state_code.upper()
    full_name = CODE_TO_STATE_NAME.get(code)

    for segment in text.upper().split(","):
        tokens = segment.split()
        if not tokens:
            continue
        if tokens[0] == code:
            return True
        # Whole segment match so "Virginia" does not match "West Virginia"
        if full_name and " ".join(tokens[: len(full_name.split())]) == full_name:
            return True
    return False

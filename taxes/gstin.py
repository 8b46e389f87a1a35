from __future__ import annotations

import re


GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$")

STATE_NAMES: dict[str, str] = {
    "01": "Jammu and Kashmir",
    "02": "Himachal Pradesh",
    "03": "Punjab",
    "04": "Chandigarh",
    "05": "Uttarakhand",
    "06": "Haryana",
    "07": "Delhi",
    "08": "Rajasthan",
    "09": "Uttar Pradesh",
    "10": "Bihar",
    "11": "Sikkim",
    "12": "Arunachal Pradesh",
    "13": "Nagaland",
    "14": "Manipur",
    "15": "Mizoram",
    "16": "Tripura",
    "17": "Meghalaya",
    "18": "Assam",
    "19": "West Bengal",
    "20": "Jharkhand",
    "21": "Odisha",
    "22": "Chhattisgarh",
    "23": "Madhya Pradesh",
    "24": "Gujarat",
    "25": "Daman and Diu",
    "26": "Dadra and Nagar Haveli",
    "27": "Maharashtra",
    "28": "Andhra Pradesh",
    "29": "Karnataka",
    "30": "Goa",
    "31": "Lakshadweep",
    "32": "Kerala",
    "33": "Tamil Nadu",
    "34": "Puducherry",
    "35": "Andaman and Nicobar Islands",
    "36": "Telangana",
    "37": "Andhra Pradesh (New)",
}


def normalize_gstin(value: str | None) -> str:
    return (value or "").strip().upper()


def is_valid_gstin(value: str | None) -> bool:
    gstin = normalize_gstin(value)
    if not gstin:
        return False
    return bool(GSTIN_PATTERN.match(gstin))


def state_code_from_gstin(value: str | None) -> str:
    """
    First two characters of a GSTIN (or a bare state code). Empty string when
    the value is too short to carry one.
    """
    gstin = normalize_gstin(value)
    if len(gstin) < 2:
        return ""
    return gstin[:2]


def state_name(code: str | None) -> str:
    return STATE_NAMES.get(state_code_from_gstin(code), "Unknown")

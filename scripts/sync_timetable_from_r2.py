#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import json
import os
from datetime import date
from typing import Any, Dict

import boto3
from dotenv import load_dotenv

from timetabler.core.config import settings
from timetabler.core.logging import setup_logging
from timetabler.db.session import SessionLocal
from timetabler.importer import TimetableImportError, import_timetable, load_document
from timetabler.schemas import TimetableIn


# ----------------------------
# Helpers
# ----------------------------

def die(msg: str, code: int = 1) -> None:
    print(f"[ERROR] {msg}")
    raise SystemExit(code)


def env_required(name: str) -> str:
    v = os.getenv(name)
    if not v:
        die(f"Required environment variable is not set: {name}")
    return v


# ----------------------------
# R2
# ----------------------------

def r2_client():
    return boto3.client(
        "s3",
        endpoint_url=env_required("R2_ENDPOINT"),
        aws_access_key_id=env_required("R2_ACCESS_KEY_ID"),
        aws_secret_access_key=env_required("R2_SECRET_ACCESS_KEY"),
        region_name="auto",
    )


def download_from_r2(bucket: str, key: str, out_path: str) -> None:
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    r2_client().download_file(bucket, key, out_path)
    print(f"OK download: {key}")


def load_index_json(bucket: str, index_key: str) -> Dict[str, Any]:
    tmp_path = "tmp/index_timetable.json"
    download_from_r2(bucket, index_key, tmp_path)
    with open(tmp_path, "r", encoding="utf-8") as f:
        return json.load(f)


def fetch_export(bucket: str, timetable_type: str) -> str:
    """Download the export `index.json` currently points at and return its local path."""
    index_key = f"timetables/{timetable_type}/index.json"
    index_data = load_index_json(bucket, index_key)
    xml_key = index_data.get("current_key")
    if not xml_key:
        die("index.json has no current_key")

    out_xml = f"tmp/timetable_{timetable_type}.xml"
    download_from_r2(bucket, xml_key, out_xml)
    return out_xml


def read_descriptor(default_name: str) -> TimetableIn:
    raw = {
        "name": os.getenv("TIMETABLE_NAME") or default_name,
        "valid_from": os.getenv("VALID_FROM") or date.today().isoformat(),
    }
    try:
        return TimetableIn.model_validate(raw)
    except ValueError as exc:
        die(f"Invalid TIMETABLE_NAME / VALID_FROM: {exc}")


# ----------------------------
# Main
# ----------------------------

def main() -> None:
    load_dotenv()
    setup_logging(settings.LOG_LEVEL)

    # a local file skips R2 entirely
    xml_path = os.getenv("XML_PATH")
    timetable_type = os.getenv("TIMETABLE_TYPE", "default").strip().lower()
    if not xml_path:
        xml_path = fetch_export(env_required("R2_BUCKET"), timetable_type)

    if not os.path.exists(xml_path):
        die(f"Export not found: {xml_path}")

    descriptor = read_descriptor(f"{timetable_type} {date.today().isoformat()}")

    try:
        document = load_document(xml_path)
        with SessionLocal() as db:
            summary = import_timetable(db, document, descriptor)
    except TimetableImportError as exc:
        die(f"Timetable import failed: {exc}", 2)

    print(summary.format_report())
    print("Timetable import finished.")


if __name__ == "__main__":
    main()

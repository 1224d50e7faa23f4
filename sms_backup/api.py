"""
FastAPI backend for SMS Backup.

Exposes the converter over HTTP so another process (a phone bridge, a
sync job) can post raw message-store rows and get converted messages back.
The API never writes an mbox and never moves the watermark; callers pass
their own floor date.

Configuration comes from the SMS_BACKUP_* environment variables (see
sms_backup.config).
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from sms_backup.config import Config, get_config
from sms_backup.convert.batch import BatchConverter, DEFAULT_MAX_SYNCED_DATE
from sms_backup.convert.converter import RecordConverter
from sms_backup.convert.directory import ContactsDirectory, Directory, NullDirectory
from sms_backup.convert.person import PersonResolver
from sms_backup.pipeline import build_context, get_backup_status
from sms_backup.prefs import PreferenceStore


class ConvertRequest(BaseModel):
    rows: List[Dict[str, Optional[str]]]
    max_entries: int = Field(default=100, ge=0, le=10_000)
    floor_date: int = DEFAULT_MAX_SYNCED_DATE


def _get_config() -> Config:
    return get_config()


def _open_directory(config: Config) -> Directory:
    if config.validate_contacts():
        return ContactsDirectory(config.contacts_path)
    return NullDirectory()


app = FastAPI(
    title="SMS Backup API",
    version="0.1.0",
    description="Converts SMS message-store rows into email messages.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        os.getenv("SMS_BACKUP_ALLOWED_ORIGIN", "http://127.0.0.1:5173"),
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health() -> Dict[str, Any]:
    """Health check."""
    return {"status": "ok"}


@app.get("/status")
def status() -> Dict[str, Any]:
    """Watermark, reference token and store state."""
    return get_backup_status(_get_config())


@app.post("/convert")
def convert(request: ConvertRequest) -> Dict[str, Any]:
    """
    Convert posted rows.

    Returns the converted messages and the watermark over all posted rows.
    """
    config = _get_config()
    if not config.user_email:
        raise HTTPException(
            status_code=503,
            detail={
                "error": "user email not configured",
                "message": "Set SMS_BACKUP_USER_EMAIL",
            },
        )

    directory = _open_directory(config)
    try:
        with PreferenceStore(config.prefs_path) as prefs:
            context = build_context(config, prefs)
        converter = RecordConverter(context, PersonResolver(directory))
        result = BatchConverter(converter).convert_batch(
            request.rows, request.max_entries, floor_date=request.floor_date
        )
    finally:
        if isinstance(directory, ContactsDirectory):
            directory.close()

    return {
        "max_date": result.max_date,
        "rows_visited": result.rows_visited,
        "rows_skipped": result.rows_skipped,
        "messages": [message.to_dict() for message in result.messages],
    }

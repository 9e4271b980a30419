"""Stored place-order submissions, keyed by (buyer_id, idempotency_key)."""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_checkout.domain.models import Submission

_GET_SUBMISSION_SQL = text("""
    SELECT buyer_id, idempotency_key, fingerprint, response, created_at
    FROM checkout_submissions
    WHERE buyer_id = :buyer_id AND idempotency_key = :idempotency_key
""")

# A concurrent insert of the same key fails on uq_checkout_submissions and
# rolls the whole checkout back.
_INSERT_SUBMISSION_SQL = text("""
    INSERT INTO checkout_submissions (buyer_id, idempotency_key, fingerprint, response)
    VALUES (:buyer_id, :idempotency_key, :fingerprint, CAST(:response AS JSONB))
""")


def _row_to_submission(row: Any) -> Submission:
    response = row.response
    if isinstance(response, str):
        response = json.loads(response)
    return Submission(
        buyer_id=row.buyer_id,
        idempotency_key=row.idempotency_key,
        fingerprint=row.fingerprint,
        response=response,
        created_at=row.created_at,
    )


class SubmissionRepository:
    async def get(
        self, db: AsyncSession, buyer_id: str, idempotency_key: str
    ) -> Submission | None:
        result = await db.execute(
            _GET_SUBMISSION_SQL, {"buyer_id": buyer_id, "idempotency_key": idempotency_key}
        )
        row = result.fetchone()
        return _row_to_submission(row) if row else None

    async def insert(self, db: AsyncSession, submission: Submission) -> None:
        await db.execute(
            _INSERT_SUBMISSION_SQL,
            {
                "buyer_id": submission.buyer_id,
                "idempotency_key": submission.idempotency_key,
                "fingerprint": submission.fingerprint,
                "response": json.dumps(submission.response),
            },
        )

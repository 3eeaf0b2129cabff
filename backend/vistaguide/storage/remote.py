import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

import requests

from vistaguide.core.errors import SourceUnavailableError

logger = logging.getLogger(__name__)


class RemoteDocumentStore(Protocol):
    """Document store reachable only over the network.

    Documents are plain dicts; the document id is returned under "id".
    Every method raises SourceUnavailableError on transport failure.
    """

    def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    def query(self, filters: Dict[str, Any], limit: int) -> List[Dict[str, Any]]:
        ...

    def upsert(self, doc_id: str, fields: Dict[str, Any]) -> None:
        ...


def encode_value(value: Any) -> Dict[str, Any]:
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": value.isoformat()}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": {k: encode_value(v) for k, v in value.items()}}}
    return {"stringValue": str(value)}


def decode_value(value: Dict[str, Any]) -> Any:
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "timestampValue" in value:
        return value["timestampValue"]
    if "stringValue" in value:
        return value["stringValue"]
    if "referenceValue" in value:
        return value["referenceValue"]
    if "geoPointValue" in value:
        point = value["geoPointValue"]
        return {"latitude": point.get("latitude", 0.0), "longitude": point.get("longitude", 0.0)}
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    logger.debug("Unknown Firestore value type: %s", list(value))
    return None


def decode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: decode_value(val) for key, val in fields.items()}


def decode_document(document: Dict[str, Any]) -> Dict[str, Any]:
    data = decode_fields(document.get("fields", {}))
    data["id"] = document["name"].rsplit("/", 1)[-1]
    return data


class FirestoreRestStore:
    """RemoteDocumentStore over the Firestore REST v1 API."""

    BASE_URL = "https://firestore.googleapis.com/v1"

    def __init__(
        self,
        project_id: str,
        collection: str = "destinations",
        api_key: str | None = None,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.project_id = project_id
        self.collection = collection
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def documents_url(self) -> str:
        return f"{self.BASE_URL}/projects/{self.project_id}/databases/(default)/documents"

    def _params(self) -> Dict[str, str]:
        return {"key": self.api_key} if self.api_key else {}

    def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        url = f"{self.documents_url}/{self.collection}/{doc_id}"
        try:
            resp = self.session.get(url, params=self._params(), timeout=self.timeout)
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Firestore get %s failed: %s", doc_id, exc)
            raise SourceUnavailableError(f"remote get failed: {exc}") from exc
        return decode_document(resp.json())

    def query(self, filters: Dict[str, Any], limit: int) -> List[Dict[str, Any]]:
        structured: Dict[str, Any] = {
            "from": [{"collectionId": self.collection}],
            "orderBy": [{"field": {"fieldPath": "rating"}, "direction": "DESCENDING"}],
            "limit": limit,
        }
        clauses = [
            {
                "fieldFilter": {
                    "field": {"fieldPath": field},
                    "op": "EQUAL",
                    "value": encode_value(value),
                }
            }
            for field, value in filters.items()
        ]
        if len(clauses) == 1:
            structured["where"] = clauses[0]
        elif clauses:
            structured["where"] = {"compositeFilter": {"op": "AND", "filters": clauses}}

        try:
            resp = self.session.post(
                f"{self.documents_url}:runQuery",
                params=self._params(),
                json={"structuredQuery": structured},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Firestore query failed: %s", exc)
            raise SourceUnavailableError(f"remote query failed: {exc}") from exc

        # runQuery streams one entry per result; entries without a document are progress markers
        return [decode_document(row["document"]) for row in resp.json() if "document" in row]

    def upsert(self, doc_id: str, fields: Dict[str, Any]) -> None:
        url = f"{self.documents_url}/{self.collection}/{doc_id}"
        body = {"fields": {k: encode_value(v) for k, v in fields.items() if k != "id"}}
        try:
            resp = self.session.patch(url, params=self._params(), json=body, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Firestore upsert %s failed: %s", doc_id, exc)
            raise SourceUnavailableError(f"remote upsert failed: {exc}") from exc

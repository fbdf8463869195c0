"""
Airtable operations for the host workflow runtime.

Each operation reads its parameters from a ParameterSource, resolves
``{{json.field}}`` placeholders against the current item, calls the
AirtableClient and re-shapes the Airtable response into the item returned
to the workflow.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

from airtable_tools.config import MAX_PAGE_SIZE, RequestOptions
from airtable_tools.credentials import AirtableCredentials, CredentialSource
from airtable_tools.errors import AirtableParameterError
from airtable_tools.utils.template import resolve_value

from .client import AirtableClient

logger = logging.getLogger(__name__)

Item = dict[str, Any]


class ParameterSource(Protocol):
    """Host capability that resolves a node parameter by name."""

    def get_parameter(self, name: str, default: Any = None) -> Any:
        ...


class DictParameterSource:
    """ParameterSource backed by a plain mapping."""

    def __init__(self, parameters: Mapping[str, Any]):
        self._parameters = dict(parameters)

    def get_parameter(self, name: str, default: Any = None) -> Any:
        value = self._parameters.get(name)
        return default if value is None else value


def _param(params: ParameterSource, name: str, item_json: Mapping[str, Any], default: Any = None) -> Any:
    return resolve_value(params.get_parameter(name, default), item_json)


def _require(**values: Any) -> None:
    missing = [name for name, value in values.items() if value is None or value == ""]
    if missing:
        raise AirtableParameterError(
            f"Missing required parameter(s): {', '.join(missing)}",
            {"missing": missing},
        )


def _parse_fields(value: Any, name: str) -> dict[str, Any]:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise AirtableParameterError(f"Invalid JSON in {name}: {e}") from e
    if not isinstance(value, dict):
        raise AirtableParameterError(f"{name} must be a JSON object")
    return value


def _project_record(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "recordId": record.get("id"),
        "fields": record.get("fields", {}),
        "createdTime": record.get("createdTime"),
    }


async def create_record(client: AirtableClient, params: ParameterSource, item_json: Mapping[str, Any]) -> dict[str, Any]:
    base_id = _param(params, "base_id", item_json)
    table_name = _param(params, "table_name", item_json)
    fields = params.get_parameter("fields")
    _require(base_id=base_id, table_name=table_name, fields=fields)

    logger.info("Creating Airtable record", extra={"base_id": base_id, "table_name": table_name})
    response = await client.create_record(base_id, table_name, _parse_fields(fields, "fields"))

    record = response["records"][0]
    return {"success": True, **_project_record(record)}


async def read_record(client: AirtableClient, params: ParameterSource, item_json: Mapping[str, Any]) -> dict[str, Any]:
    base_id = _param(params, "base_id", item_json)
    table_name = _param(params, "table_name", item_json)
    record_id = _param(params, "record_id", item_json)
    _require(base_id=base_id, table_name=table_name, record_id=record_id)

    logger.info("Reading Airtable record", extra={"base_id": base_id, "record_id": record_id})
    response = await client.get_record(base_id, table_name, record_id)
    return {"success": True, **_project_record(response)}


async def update_record(client: AirtableClient, params: ParameterSource, item_json: Mapping[str, Any]) -> dict[str, Any]:
    base_id = _param(params, "base_id", item_json)
    table_name = _param(params, "table_name", item_json)
    record_id = _param(params, "record_id", item_json)
    update_fields = params.get_parameter("update_fields")
    _require(
        base_id=base_id,
        table_name=table_name,
        record_id=record_id,
        update_fields=update_fields,
    )

    logger.info("Updating Airtable record", extra={"base_id": base_id, "record_id": record_id})
    response = await client.update_record(
        base_id, table_name, record_id, _parse_fields(update_fields, "update_fields")
    )

    record = response["records"][0]
    return {"success": True, "recordId": record.get("id"), "fields": record.get("fields", {})}


async def delete_record(client: AirtableClient, params: ParameterSource, item_json: Mapping[str, Any]) -> dict[str, Any]:
    base_id = _param(params, "base_id", item_json)
    table_name = _param(params, "table_name", item_json)
    record_id = _param(params, "record_id", item_json)
    _require(base_id=base_id, table_name=table_name, record_id=record_id)

    logger.info("Deleting Airtable record", extra={"base_id": base_id, "record_id": record_id})
    await client.delete_record(base_id, table_name, record_id)
    return {"success": True, "recordId": record_id, "deleted": True}


async def list_records(client: AirtableClient, params: ParameterSource, item_json: Mapping[str, Any]) -> dict[str, Any]:
    base_id = _param(params, "base_id", item_json)
    table_name = _param(params, "table_name", item_json)
    filter_formula = _param(params, "filter_formula", item_json, "")
    sort_field = _param(params, "sort_field", item_json, "")
    sort_direction = params.get_parameter("sort_direction", "asc")
    limit = params.get_parameter("limit", MAX_PAGE_SIZE)
    _require(base_id=base_id, table_name=table_name)
    if sort_direction not in ("asc", "desc"):
        raise AirtableParameterError("sort_direction must be 'asc' or 'desc'")

    logger.info(
        "Listing Airtable records",
        extra={"base_id": base_id, "table_name": table_name, "limit": limit},
    )
    response = await client.list_records(
        base_id,
        table_name,
        filter_formula=filter_formula or None,
        sort_field=sort_field or None,
        sort_direction=sort_direction,
        page_size=limit,
    )

    records = response.get("records", [])
    return {
        "success": True,
        "count": len(records),
        "records": [_project_record(r) for r in records],
    }


async def list_bases(client: AirtableClient, params: ParameterSource, item_json: Mapping[str, Any]) -> dict[str, Any]:
    logger.info("Listing Airtable bases")
    response = await client.list_bases()
    bases = response.get("bases", [])
    return {
        "success": True,
        "count": len(bases),
        "bases": [{"id": b.get("id"), "name": b.get("name")} for b in bases],
    }


async def get_base(client: AirtableClient, params: ParameterSource, item_json: Mapping[str, Any]) -> dict[str, Any]:
    base_id = _param(params, "base_id", item_json)
    _require(base_id=base_id)

    logger.info("Getting Airtable base", extra={"base_id": base_id})
    response = await client.get_base(base_id)
    return {
        "success": True,
        "id": response.get("id"),
        "name": response.get("name"),
        "tables": [{"id": t.get("id"), "name": t.get("name")} for t in response.get("tables", [])],
    }


async def list_tables(client: AirtableClient, params: ParameterSource, item_json: Mapping[str, Any]) -> dict[str, Any]:
    base_id = _param(params, "base_id", item_json)
    _require(base_id=base_id)

    logger.info("Listing Airtable tables", extra={"base_id": base_id})
    response = await client.list_tables(base_id)
    tables = response.get("tables", [])
    return {
        "success": True,
        "count": len(tables),
        "tables": [
            {
                "id": t.get("id"),
                "name": t.get("name"),
                "fields": [
                    {"id": f.get("id"), "name": f.get("name"), "type": f.get("type")}
                    for f in t.get("fields", [])
                ],
            }
            for t in tables
        ],
    }


Operation = Callable[[AirtableClient, ParameterSource, Mapping[str, Any]], Awaitable[dict[str, Any]]]

OPERATIONS: dict[str, dict[str, Operation]] = {
    "record": {
        "create_record": create_record,
        "read_record": read_record,
        "update_record": update_record,
        "delete_record": delete_record,
        "list_records": list_records,
    },
    "base": {
        "list_bases": list_bases,
        "get_base": get_base,
        "list_tables": list_tables,
    },
}


class AirtableNode:
    """
    Runs one Airtable operation over a batch of workflow items.

    The resource/operation pair, the operation parameters and the "options"
    collection (timeout, max_retries, retry_delay) come from the
    ParameterSource; credentials come from the CredentialSource.
    """

    def __init__(
        self,
        parameters: ParameterSource,
        credentials: CredentialSource,
        continue_on_fail: bool = False,
        client_factory: Callable[..., AirtableClient] = AirtableClient,
    ):
        self._parameters = parameters
        self._credentials = credentials
        self._continue_on_fail = continue_on_fail
        self._client_factory = client_factory

    def _resolve_operation(self, resource: str, operation: str) -> Operation:
        handler = OPERATIONS.get(resource, {}).get(operation)
        if handler is None:
            raise AirtableParameterError(
                f"Unknown operation: {operation}",
                {"resource": resource, "operation": operation},
            )
        return handler

    async def execute(self, items: list[Item] | None = None) -> list[Item]:
        """
        Execute the configured operation once per input item.

        Returns:
            One output item ({"json": result}) per input item. With
            continue_on_fail, failed items carry {"success": False, "error": ...}.

        Raises:
            CredentialError: If no Airtable credentials are configured.
            AirtableError: The first failure, unless continue_on_fail is set.
        """
        resource = self._parameters.get_parameter("resource", "record")
        operation = self._parameters.get_parameter("operation", "create_record")

        try:
            record = await self._credentials.get_credentials("airtable")
            credentials = AirtableCredentials.from_mapping(record)

            options = RequestOptions(**(self._parameters.get_parameter("options") or {}))
            client = self._client_factory(
                credentials,
                retry_policy=options.retry_policy,
                timeout_ms=options.timeout,
            )

            results: list[Item] = []
            for item in items or [{"json": {}}]:
                item_json = item.get("json") or {}
                try:
                    handler = self._resolve_operation(resource, operation)
                    result = await handler(client, self._parameters, item_json)
                except Exception as e:
                    if not self._continue_on_fail:
                        raise
                    results.append({
                        "json": {
                            "success": False,
                            "error": getattr(e, "message", str(e)),
                            "operation": operation,
                            "resource": resource,
                        }
                    })
                    continue
                results.append({"json": result})
            return results
        except Exception as e:
            logger.error(
                "Airtable Node Error",
                extra={"operation": operation, "resource": resource, "error": str(e)},
            )
            raise

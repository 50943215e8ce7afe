"""DynamoDB-backed counter store.

Table layout (partition key ``pk``, TTL attribute ``expires_at``):

- counters: one item per scope key, one numeric attribute per bucket
  (``b<index>``). A hit is a single ``UpdateItem`` that ADDs to the
  current bucket and returns ``ALL_NEW``, so the increment and the
  read-back are atomic. Buckets that have left the window are removed
  by a follow-up conditional ``UpdateItem``, keeping the item bounded
  to roughly one window of buckets.
- values: one item per key with a ``value`` string attribute.

DynamoDB TTL deletion is lazy, so expiry is also checked on read.
"""

import asyncio
import time
from collections.abc import Callable

from botocore.exceptions import BotoCoreError, ClientError

from src.core.errors import StoreUnavailable
from src.logging.audit import get_audit_logger
from src.store.base import CounterStore

BUCKET_ATTR_PREFIX = "b"
PRUNE_BATCH_SIZE = 100


class DynamoDBCounterStore(CounterStore):
    """Counter store on a single DynamoDB table."""

    def __init__(self, table_name: str, region: str = "us-east-1",
                 clock: Callable[[], float] = time.time):
        self._table_name = table_name
        self._region = region
        self._clock = clock
        self._table = None

    def _get_table(self):
        """Lazy-init boto3 Table resource."""
        if self._table is None:
            import boto3

            dynamodb = boto3.resource("dynamodb", region_name=self._region)
            self._table = dynamodb.Table(self._table_name)
        return self._table

    async def hit(self, key: str, bucket: int, oldest_bucket: int, ttl_seconds: int) -> dict[int, int]:
        attributes = await self._call(self._update_counter, key, bucket, ttl_seconds)

        counts: dict[int, int] = {}
        stale: list[str] = []
        for name, value in attributes.items():
            if not name.startswith(BUCKET_ATTR_PREFIX):
                continue
            index = int(name[len(BUCKET_ATTR_PREFIX):])
            if index < oldest_bucket:
                stale.append(name)
            elif index <= bucket:
                counts[index] = int(value)

        if stale:
            await self._prune(key, stale)
        return counts

    def _update_counter(self, key: str, bucket: int, ttl_seconds: int) -> dict:
        table = self._get_table()
        resp = table.update_item(
            Key={"pk": key},
            UpdateExpression="ADD #cur :one SET #exp = :exp",
            ExpressionAttributeNames={
                "#cur": f"{BUCKET_ATTR_PREFIX}{bucket}",
                "#exp": "expires_at",
            },
            ExpressionAttributeValues={
                ":one": 1,
                ":exp": int(self._clock()) + ttl_seconds,
            },
            ReturnValues="ALL_NEW",
        )
        return resp.get("Attributes", {})

    async def _prune(self, key: str, stale: list[str]) -> None:
        """Drop buckets that have left the window.

        Runs after the counted update: these buckets are below every later
        ``oldest_bucket`` and are never read again. A failed prune only
        leaves them for the next hit, so it is logged rather than raised.
        """
        for start in range(0, len(stale), PRUNE_BATCH_SIZE):
            batch = stale[start:start + PRUNE_BATCH_SIZE]
            try:
                await self._call(self._remove_attributes, key, batch)
            except StoreUnavailable as e:
                get_audit_logger().warning(
                    "Stale bucket prune failed",
                    extra={"audit_data": {"store_key": key, "stale_buckets": len(stale), "error": str(e)}},
                )
                return

    def _remove_attributes(self, key: str, names: list[str]) -> None:
        placeholders = {f"#s{i}": name for i, name in enumerate(names)}
        try:
            self._get_table().update_item(
                Key={"pk": key},
                UpdateExpression="REMOVE " + ", ".join(placeholders),
                # Never recreate an item that TTL has already deleted
                ConditionExpression="attribute_exists(pk)",
                ExpressionAttributeNames=placeholders,
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") != "ConditionalCheckFailedException":
                raise

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        item = {
            "pk": key,
            "value": value,
            "expires_at": int(self._clock()) + ttl_seconds,
        }
        await self._call(lambda: self._get_table().put_item(Item=item))

    async def get(self, key: str) -> str | None:
        resp = await self._call(
            lambda: self._get_table().get_item(Key={"pk": key}, ConsistentRead=True)
        )
        item = resp.get("Item")
        if item is None:
            return None
        if self._clock() >= int(item.get("expires_at", 0)):
            return None
        return item.get("value")

    async def _call(self, fn, *args):
        """Run a blocking boto3 call off the event loop, mapping SDK errors."""
        try:
            return await asyncio.to_thread(fn, *args)
        except (BotoCoreError, ClientError) as e:
            raise StoreUnavailable(f"Counter store error: {e}") from e

"""
Realtime fan-out for conversation messages over Redis pub/sub
Publishers use the shared sync client; websocket subscribers use redis.asyncio
"""

import asyncio
import json
import logging
import os

import redis.asyncio as aioredis
from fastapi import WebSocket

from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)


def conversation_channel(conversation_id: str) -> str:
    return f"conversation:{conversation_id}"


def publish_message(conversation_id: str, payload: dict) -> bool:
    """Publish a new message to subscribers of the conversation channel; failures are logged only"""
    try:
        client = get_redis_client()
        receivers = client.publish(conversation_channel(conversation_id), json.dumps(payload, default=str))
        logger.debug(f"📡 Published message to {receivers} subscriber(s) on conversation {conversation_id}")
        return True
    except Exception as e:
        logger.warning(f"⚠️ Realtime publish failed for conversation {conversation_id}: {e}")
        return False


def get_async_redis() -> aioredis.Redis:
    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        return aioredis.from_url(redis_url, decode_responses=True)
    return aioredis.Redis(
        host=os.getenv("REDIS_HOST", "localhost"),
        port=int(os.getenv("REDIS_PORT", "6379")),
        password=os.getenv("REDIS_PASSWORD"),
        db=int(os.getenv("REDIS_DB", "0")),
        ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
        decode_responses=True,
    )


async def stream_conversation(websocket: WebSocket, conversation_id: str) -> None:
    """Forward every message published on the conversation channel to an accepted websocket"""
    client = get_async_redis()
    pubsub = client.pubsub()
    channel = conversation_channel(conversation_id)
    await pubsub.subscribe(channel)
    logger.info(f"🔌 Websocket subscribed to {channel}")
    try:
        while True:
            message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            if message is not None:
                await websocket.send_text(message["data"])
            else:
                await asyncio.sleep(0.05)
    finally:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()
        await client.aclose()
        logger.info(f"🔌 Websocket unsubscribed from {channel}")

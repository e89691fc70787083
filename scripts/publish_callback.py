"""Send one provider callback record to the dispatcher.

Either publishes it to the callbacks Kafka topic wrapped in the callback
envelope, or POSTs it to the HTTP endpoint. Useful for replaying captured IPN
messages by hand.
"""

import argparse
import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

import httpx
from aiokafka import AIOKafkaProducer


async def publish(bootstrap_servers: str, topic: str, envelope: dict) -> None:
    """Open producer, publish one envelope, close producer."""

    producer = AIOKafkaProducer(bootstrap_servers=bootstrap_servers)
    await producer.start()
    try:
        await producer.send_and_wait(topic, json.dumps(envelope).encode("utf-8"))
    finally:
        await producer.stop()


def main() -> None:
    """Parse CLI args and deliver one JSON record."""

    parser = argparse.ArgumentParser(description="Send a provider callback record to the dispatcher.")
    parser.add_argument("--json", dest="json_inline", default=None, help="Inline JSON record")
    parser.add_argument("--file", dest="json_file", default=None, help="Path to JSON record file")
    parser.add_argument("--provider", default="paypal")
    parser.add_argument("--bootstrap-servers", default="localhost:9092")
    parser.add_argument("--topic", default="provider.callbacks")
    parser.add_argument("--url", default=None, help="POST to this dispatcher base URL instead of Kafka")
    args = parser.parse_args()

    if bool(args.json_inline) == bool(args.json_file):
        raise SystemExit("Provide exactly one of --json or --file")

    if args.json_inline:
        record = json.loads(args.json_inline)
    else:
        record = json.loads(Path(args.json_file).read_text())

    if args.url:
        response = httpx.post(f"{args.url.rstrip('/')}/callbacks", json=record, timeout=10.0)
        print(f"status={response.status_code} body={response.text}")
        return

    envelope = {
        "event_id": str(uuid4()),
        "provider": args.provider,
        "received_at": datetime.now(timezone.utc).isoformat(),
        "trace_id": str(uuid4()),
        "record": record,
    }
    asyncio.run(publish(args.bootstrap_servers, args.topic, envelope))
    print(f"Published event_id={envelope['event_id']} to topic={args.topic}")


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
KUANTAN FLASH FLOOD DEMO SCRIPT

Replays a burst of social posts modelled on the January 2021 Pahang floods
through the CrowdWatch pipeline:

  posts -> classify -> dedup -> spike detection -> alert -> verification

Modes:
  local (default)  in-memory stores, keyword classifier (or --bedrock)
  live             POST posts to the deployed ingest API, then invoke the
                   spike detector and verifier Lambdas
"""

import argparse
import json
import os
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

import boto3
import requests
from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from crowdwatch.clients.bedrock_client import BedrockClient  # noqa: E402
from crowdwatch.core.deduplicator import Deduplicator  # noqa: E402
from crowdwatch.core.post_analyzer import PostAnalyzer  # noqa: E402
from crowdwatch.core.spike_detector import SpikeDetector  # noqa: E402
from crowdwatch.core.verification import VerificationEngine  # noqa: E402
from crowdwatch.local import InMemoryAlertManager, InMemoryEventStore  # noqa: E402
from crowdwatch.pipeline import AlertPipeline, PostPipeline, VerificationRun  # noqa: E402

load_dotenv()


@dataclass
class DemoConfig:
    """Demo configuration with defaults from environment."""
    region: str = field(default_factory=lambda: os.getenv("AWS_REGION", "ap-southeast-1"))
    ingest_api_url: str = field(default_factory=lambda: os.getenv("INGEST_API_URL", ""))
    spike_lambda: str = field(default_factory=lambda: os.getenv("SPIKE_DETECTOR_LAMBDA", "crowdwatch-dev-spike-detector"))
    verifier_lambda: str = field(default_factory=lambda: os.getenv("VERIFIER_LAMBDA", "crowdwatch-dev-verifier"))
    bedrock_model_id: str = field(default_factory=lambda: os.getenv("BEDROCK_MODEL_ID", BedrockClient.DEFAULT_MODEL_ID))

    # Demo settings
    start_timestamp: int = field(default_factory=lambda: int(time.time()) - 15 * 60)
    use_bedrock: bool = False


# (minutes after start, author, text, declared location)
SCENARIO: List[tuple] = [
    (0, "aisyah_k", "Best nasi lemak in Kuantan, the sambal is amazing", None),
    (1, "farid88", "Banjir teruk di Kuantan! Air naik sampai paras lutut dekat Jalan Gambang", None),
    (2, "mei_ling", "Flash flood in Kuantan town, cars stuck and water rising fast. Please help!", None),
    (3, "farid88", "Banjir teruk di Kuantan! Air naik sampai paras lutut dekat Jalan Gambang", None),
    (4, "ravi_pahang", "Emergency evacuation at Kuantan, families trapped on rooftops, flood rescue needed", "Kuantan"),
    (5, "kl_commuter", "Traffic jam on the Federal Highway again, stuck for an hour", "KL"),
    (6, "nurul_h", "Banjir kilat di Kuantan, mangsa banjir dipindahkan ke pusat pemindahan", None),
    (8, "hafiz_t", "Heavy rain and strong wind in Kota Bharu this evening", None),
]

OFFICIAL_BULLETIN = (
    "Continuous heavy rain warning: flood risk in Kuantan, Pekan and Maran, Pahang. "
    "Residents in low-lying areas are advised to evacuate."
)


def build_posts(cfg: DemoConfig) -> List[Dict]:
    posts = []
    for i, (minute, author, text, location) in enumerate(SCENARIO):
        posts.append(
            {
                "post_id": f"demo{i:03d}",
                "text": text,
                "author": author,
                "source": "demo",
                "timestamp": cfg.start_timestamp + minute * 60,
                "location": location,
            }
        )
    return posts


def run_local(cfg: DemoConfig) -> Dict:
    clock = {"now": cfg.start_timestamp}
    event_store = InMemoryEventStore()
    alert_manager = InMemoryAlertManager(clock=lambda: clock["now"])

    llm = BedrockClient(cfg.bedrock_model_id, cfg.region) if cfg.use_bedrock else None
    pipeline = PostPipeline(
        analyzer=PostAnalyzer(llm_client=llm),
        deduplicator=Deduplicator(event_store=event_store),
        event_store=event_store,
    )
    alerts = AlertPipeline(SpikeDetector(), alert_manager)

    print("\n== Ingest ==")
    for post in build_posts(cfg):
        clock["now"] = post["timestamp"]
        result = pipeline.process(post, now=post["timestamp"])
        event = result["event"] or {}
        print(
            f"  t+{(post['timestamp'] - cfg.start_timestamp) // 60:>2}m  {result['status']:<9} "
            f"{event.get('region', '-'):<14} sev={event.get('severity', '-')}  {post['text'][:50]}"
        )

        run = alerts.run(list(event_store.events.values()), now=post["timestamp"])
        for action in run["actions"]:
            print(f"           -> {action['action'].upper()} {action['alert_id']} ({action.get('risk_level', action.get('to_level'))})")

    print("\n== Verification ==")
    engine = VerificationEngine()
    clock["now"] += 20 * 60
    verifications = engine.extract_verifications(
        "Malaysian Meteorological Department", OFFICIAL_BULLETIN, "official_alert", timestamp=clock["now"]
    )
    verify = VerificationRun(engine, event_store, alert_manager)
    result = verify.apply(verifications, list(event_store.events.values()), alert_manager.list_active_alerts())
    print(f"  events verified: {len(result['verified_events'])}")
    print(f"  alerts verified: {len(result['verified_alerts'])}")
    print(f"  stats: {json.dumps(result['stats'])}")

    return {"alerts": list(alert_manager.alerts.values()), "notifications": alert_manager.notifications}


def run_live(cfg: DemoConfig) -> None:
    if not cfg.ingest_api_url:
        raise SystemExit("INGEST_API_URL is required for --live")

    print("\n== Ingest (API) ==")
    for post in build_posts(cfg):
        body = {k: v for k, v in post.items() if v is not None and k != "timestamp"}
        resp = requests.post(cfg.ingest_api_url, json=body, timeout=30)
        print(f"  {resp.status_code}  {resp.text[:100]}")

    lambda_client = boto3.client("lambda", region_name=cfg.region)
    for name in (cfg.spike_lambda, cfg.verifier_lambda):
        print(f"\n== Invoke {name} ==")
        resp = lambda_client.invoke(FunctionName=name, Payload=json.dumps({"source": "demo"}).encode("utf-8"))
        print("  " + resp["Payload"].read().decode("utf-8"))


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay the Kuantan flash flood scenario")
    parser.add_argument("--live", action="store_true", help="Send posts to the deployed stack")
    parser.add_argument("--bedrock", action="store_true", help="Classify with Bedrock in local mode")
    args = parser.parse_args()

    cfg = DemoConfig(use_bedrock=args.bedrock)
    if args.live:
        run_live(cfg)
        return

    summary = run_local(cfg)
    print("\n== Alerts ==")
    for alert in summary["alerts"]:
        print(
            f"  {alert['alert_id']}  {alert['risk_level']:<6} events={alert['event_count']} "
            f"verified={bool(alert['verified'])}"
        )


if __name__ == "__main__":
    main()

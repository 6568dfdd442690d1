from __future__ import annotations

import threading
from pathlib import Path

from card_art import build_workflow
from cardart import ComfyClient, ComfyConfig, open_transport

CARDS = {
    "scout": ("Scout", "Trade Federation"),
    "viper": ("Viper", "Blob"),
    "battle_station": ("Battle Station", "Machine Cult"),
}


def main() -> int:
    config = ComfyConfig.from_env()
    out_dir = Path("card_art")
    out_dir.mkdir(exist_ok=True)
    cancel = threading.Event()

    # One transport for the whole process; every job shares it.
    with open_transport() as transport:
        client = ComfyClient(config, transport=transport)
        workflows = {key: build_workflow(name, faction) for key, (name, faction) in CARDS.items()}
        # Wall-clock cap for the whole batch on top of each job's poll budget
        deadline = threading.Timer(600, cancel.set)
        deadline.start()
        try:
            results = client.wait_for_many(workflows, max_workers=3, cancel_event=cancel)
        finally:
            deadline.cancel()

    failures = 0
    for key, result in results.items():
        if result.ok and result.artifact is not None:
            (out_dir / f"{key}.png").write_bytes(result.artifact)
            print(f"{key}: {result.artifact_size} bytes")
        else:
            failures += 1
            print(f"{key}: {result.status.value} {result.error or ''}")
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())

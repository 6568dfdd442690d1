from __future__ import annotations

import json
from pathlib import Path

from cardart import ComfyClient, ComfyConfig
from cardart.vis.terminal import TerminalPrinter


def build_workflow(card_name: str, faction: str, seed: int = 42) -> str:
    """Minimal text-to-image graph for one card; real prompts come from the prompt builder."""
    positive = f"{card_name}, {faction} faction starship, painterly fantasy card art"
    workflow = {
        "3": {
            "class_type": "KSampler",
            "inputs": {
                "seed": seed, "steps": 20, "cfg": 7.0, "sampler_name": "euler",
                "scheduler": "normal", "denoise": 1.0,
                "model": ["4", 0], "positive": ["6", 0], "negative": ["7", 0], "latent_image": ["5", 0],
            },
        },
        "4": {"class_type": "CheckpointLoaderSimple", "inputs": {"ckpt_name": "sd_xl_base_1.0.safetensors"}},
        "5": {"class_type": "EmptyLatentImage", "inputs": {"width": 512, "height": 768, "batch_size": 1}},
        "6": {"class_type": "CLIPTextEncode", "inputs": {"text": positive, "clip": ["4", 1]}},
        "7": {"class_type": "CLIPTextEncode", "inputs": {"text": "text, watermark, blurry", "clip": ["4", 1]}},
        "8": {"class_type": "VAEDecode", "inputs": {"samples": ["3", 0], "vae": ["4", 2]}},
        "9": {"class_type": "SaveImage", "inputs": {"filename_prefix": "card", "images": ["8", 0]}},
    }
    return json.dumps(workflow)


def main() -> int:
    config = ComfyConfig.from_env()
    with ComfyClient(config, printer=TerminalPrinter()) as client:
        result = client.wait_for_completion(build_workflow("Void Lancer", "Merchant Guild"))

    if not result.ok:
        print(f"Generation failed ({result.error_kind.value}): {result.error}")
        return 1
    if result.artifact is None:
        print(f"Job {result.job_id} finished without an image output")
        return 1

    out = Path("void_lancer.png")
    out.write_bytes(result.artifact)
    print(f"Saved {out} ({result.artifact_size} bytes)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

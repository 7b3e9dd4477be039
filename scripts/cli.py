"""
CLI to classify a still image -> JSON.
"""
from __future__ import annotations
import argparse, asyncio, json, logging
from emotion_core.config import Settings
from emotion_core.detection import EmotionDetector
from emotion_core.frames import ImageSource


async def classify_image(path: str, settings: Settings) -> dict:
    detector = EmotionDetector(settings)
    try:
        if detector.mode == "primary_first":
            await detector.initialize()
        prediction = await detector.detect_with_fallback(ImageSource.from_file(path))
        return {**prediction.model_dump(), "model_ready": detector.is_model_ready()}
    finally:
        detector.dispose()


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--image", required=True, help="Path to input image")
    p.add_argument("--mode", choices=["primary_first", "fallback_only"], default=None,
                   help="Override DETECTION_MODE")
    p.add_argument("--out", default=None, help="Optional path to output JSON")
    args = p.parse_args()

    settings = Settings()
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    if args.mode:
        settings = Settings(DETECTION_MODE=args.mode)

    result = asyncio.run(classify_image(args.image, settings))
    print(json.dumps(result, indent=2, ensure_ascii=False))

    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            json.dump(result, f, indent=2, ensure_ascii=False)
        print(f"✅ Prediction written to {args.out}")

if __name__ == "__main__":
    main()

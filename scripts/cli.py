"""
Terminal chat with the Mood Spoiler bot.

Usage:
    python scripts/cli.py                 # webcam + best available detector
    python scripts/cli.py --no-camera     # simulated emotions, no webcam

Commands: /mood shows the latest detected emotion, /quit exits.
"""
from __future__ import annotations
import argparse
import asyncio
import logging

from core.camera import no_camera
from core.config import Settings
from core.errors import CameraUnavailableError, EmptyMessageError
from core.session import MoodSession


def _describe(session: MoodSession) -> str:
    sample = session.latest_sample
    if sample is None:
        return f"mood: {session.current_emotion} (no sample yet)"
    suffix = "" if sample.canonical else " [unmapped]"
    return f"mood: {sample.label}{suffix} {round(sample.confidence * 100)}% via {sample.backend}"


async def run(args) -> None:
    overrides = {}
    if args.camera_index is not None:
        overrides["CAMERA_INDEX"] = args.camera_index
    if args.no_camera:
        overrides["DETECTOR_BACKENDS"] = "simulated"
    settings = Settings(**overrides)
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))

    session = MoodSession(settings, camera_factory=no_camera) if args.no_camera else MoodSession(settings)
    print("⏳ Initializing emotion detection...")
    try:
        active = await session.start_detection()
        print(f"🎥 detector: {active.kind}")
        if active.notice:
            print(f"⚠️  {active.notice}")
    except CameraUnavailableError as e:
        print(f"⚠️  {e}; chatting with a neutral mood")

    print(f"🤖 {session.conversation.messages[0].text}")
    try:
        while True:
            try:
                line = await asyncio.to_thread(input, "you> ")
            except EOFError:
                break
            cmd = line.strip()
            if cmd == "/quit":
                break
            if cmd == "/mood":
                print(_describe(session))
                continue
            try:
                _, reply = await session.send(line)
            except EmptyMessageError:
                continue
            if reply is not None:
                tag = f" (response to: {reply.attached_emotion})" if reply.attached_emotion else ""
                print(f"🤖 {reply.text}{tag}")
    finally:
        await session.close()


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--no-camera", action="store_true", help="Skip the webcam and simulate emotions")
    p.add_argument("--camera-index", type=int, default=None, help="OpenCV camera index")
    args = p.parse_args()
    asyncio.run(run(args))

if __name__ == "__main__":
    main()

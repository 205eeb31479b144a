import argparse
import logging
import sys
import uuid

from dialogcore.chatbot import DialogueEngine
from dialogcore.config import ConfigManager, get_settings, setup_logging

logger = logging.getLogger(__name__)

EXIT_COMMANDS = {"/quit", "/exit"}


# Load settings from YAML file
def load_settings(config_path=None):
    if config_path:
        return ConfigManager(config_path).settings
    return get_settings()


def format_turn(result):
    topics = ", ".join(result.active_topics) or "-"
    return (
        f"[{result.state.display_name}] intent={result.intent} ({result.intent_confidence:.2f}) "
        f"emotion={result.emotion.label} ({result.emotion_confidence:.2f}) topics={topics}"
    )


# Console loop: one session per run
def run_console(engine, session_id, stream=sys.stdin):
    print("Type a message, /summary for the session summary, /reset to start over, /quit to leave.")
    for line in stream:
        text = line.strip()
        if text in EXIT_COMMANDS:
            break
        if text == "/summary":
            print(engine.get_session_summary(session_id))
            continue
        if text == "/reset":
            engine.reset_session(session_id)
            print("Session reset.")
            continue

        result = engine.process_message(session_id, text)
        print(format_turn(result))

    engine.end_session(session_id)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Interactive dialogue engine console")
    parser.add_argument("--config", help="Path to a settings YAML file")
    parser.add_argument("--session", help="Session id, random when omitted")
    args = parser.parse_args(argv)

    settings = load_settings(args.config)
    setup_logging(settings.logging)

    engine = DialogueEngine(settings)
    run_console(engine, args.session or str(uuid.uuid4()))
    logger.info(f"Engine metrics: {engine.get_metrics()}")
    return 0


if __name__ == '__main__':
    sys.exit(main())

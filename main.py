import argparse
import json
import sys
import threading
import time

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from config.config import CombineMode, Config
from orchestrator.core import RetrievalOrchestrator
from orchestrator.progress import ConsoleProgressSink
from models.outcome import OrchestrationOutcome


def show_loading_animation(stop_event: threading.Event) -> None:
    """
    Show a loading animation in the console.

    Args:
        stop_event: A threading.Event that will be set to stop the animation
    """
    while not stop_event.is_set():
        for char in '|/-\\':
            if stop_event.is_set():
                break
            sys.stdout.write(f'\r\033[93mSearching {char}\033[0m')
            sys.stdout.flush()
            time.sleep(0.1)

    sys.stdout.write('\r' + ' ' * 20 + '\r')
    sys.stdout.flush()


def print_outcome(outcome: OrchestrationOutcome, as_json: bool = False) -> None:
    if as_json:
        print(json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False))
        return

    print(f"\nAssistant: {outcome.text}\n")
    if outcome.citations:
        print("Sources:")
        for idx, citation in enumerate(outcome.citations, start=1):
            print(f"  [{idx}] {citation.title} ({citation.score:.2f})")
            print(f"      {citation.url}")
    counts = outcome.diagnostics.to_dict()["perBackendStatus"]
    status = ", ".join(f"{name}={info['status']}" for name, info in counts.items())
    print(f"[{status or 'no backends'} | {outcome.latency_ms} ms]\n")


def ask(orchestrator: RetrievalOrchestrator, question: str, args) -> OrchestrationOutcome:
    backend_config = orchestrator.backend_config.with_overrides(
        parallel=True if args.parallel else None,
        combine_mode=CombineMode(args.combine) if args.combine else None,
    )
    progress = ConsoleProgressSink() if args.verbose else None

    # Progress lines and the spinner would interleave
    if progress is not None or args.json:
        return orchestrator.orchestrate_sync(question, backend_config=backend_config, progress=progress)

    stop_animation = threading.Event()
    loading_thread = threading.Thread(target=show_loading_animation, args=(stop_animation,))
    loading_thread.daemon = True
    loading_thread.start()
    try:
        return orchestrator.orchestrate_sync(question, backend_config=backend_config)
    finally:
        stop_animation.set()
        loading_thread.join()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Ask the Policy Assistant a question")
    parser.add_argument("question", nargs="*", help="Question to answer (interactive mode if omitted)")
    parser.add_argument("--json", action="store_true", help="Print the full outcome as JSON")
    parser.add_argument("--parallel", action="store_true", help="Query backends in parallel")
    parser.add_argument(
        "--combine",
        choices=[m.value for m in CombineMode],
        help="merged: one answer over all evidence; provenance: one section per backend",
    )
    parser.add_argument("--verbose", action="store_true", help="Print progress events")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config = Config.from_env()

    problems = config.validate()
    if problems:
        for problem in problems:
            print(f"Error: {problem}")
        return 1

    try:
        orchestrator = RetrievalOrchestrator.from_config(config)
    except Exception as e:
        print(f"Error initializing assistant: {str(e)}")
        return 1

    if args.question:
        print_outcome(ask(orchestrator, " ".join(args.question), args), as_json=args.json)
        return 0

    print(f"\n=== Policy Assistant ({config.get_model_info()}) ===")
    print("Type 'exit' to quit or 'help' for commands\n")

    while True:
        try:
            user_input = input("You: ").strip()

            if not user_input:
                continue

            if user_input.lower() in ('exit', 'quit'):
                print("\nGoodbye!")
                break

            if user_input.lower() == 'help':
                print("\n=== Available Commands ===")
                print("help      - Show this help message")
                print("exit/quit - Exit the program\n")
                continue

            print_outcome(ask(orchestrator, user_input, args), as_json=args.json)

        except KeyboardInterrupt:
            print("\nExiting...")
            break
        except EOFError:
            break

    return 0


if __name__ == "__main__":
    sys.exit(main())

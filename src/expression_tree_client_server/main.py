"""
Command-line entry point.

Commands:
- ``serve``: run the evaluator process only
- ``prompt``: run the interactive requester against an evaluator already listening
- ``run`` (default): start the evaluator in its own process, then run the prompt against it

The prompt reads standard input until EOF, so a file of expressions can be
evaluated with ``expression-tree-calc prompt < expressions.txt``.

The ``--yaml`` flag selects the human-oriented YAML wire dialect instead of JSON.
Both processes must use the same dialect and port.
"""

import argparse
from multiprocessing import Process
import sys
import time
from typing import Literal, Optional, Sequence, TextIO

from pydantic import BaseModel, ValidationError

from expression_tree_client_server.client.client import RequesterClient
from expression_tree_client_server.common.config import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    Settings,
    WireFormat,
)
from expression_tree_client_server.common.errors import CalculatorError, ServerStartupError
from expression_tree_client_server.common.expression import to_infix
from expression_tree_client_server.common.logger import logger
from expression_tree_client_server.common.parser import ExpressionParser
from expression_tree_client_server.server.server import EvaluatorServer


Command = Literal["run", "serve", "prompt"]


class CliArgs(BaseModel):
    """
    Pydantic model used to validate CLI arguments.

    Attributes
    ----------
    command : Command
        What to run.
    settings : Settings
        Network and wire format settings.
    show_tree : bool
        Print the tree, in order, before sending it.
    """

    command: Command = "run"
    settings: Settings = Settings()
    show_tree: bool = False


def parse_args(argv: Optional[Sequence[str]] = None) -> CliArgs:
    """
    Parse and validate command-line arguments.

    :param argv: Arguments to parse, defaults to sys.argv[1:]

    :return: Validated CLI arguments
    :rtype: CliArgs
    """
    parser = argparse.ArgumentParser(
        description="Remote calculator evaluating expression trees over TCP"
    )

    parser.add_argument(
        "command",
        nargs="?",
        default="run",
        choices=["run", "serve", "prompt"],
        help="What to run (default: run)",
    )
    parser.add_argument("--yaml", action="store_true", help="Use YAML format")
    parser.add_argument("--host", default=DEFAULT_HOST, help="Evaluator host address")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Evaluator TCP port")
    parser.add_argument(
        "--show-tree", action="store_true", help="Print the expression tree before sending it"
    )

    args = parser.parse_args(argv)

    try:
        return CliArgs(
            command=args.command,
            show_tree=args.show_tree,
            settings=Settings(
                host=args.host,
                port=args.port,
                wire_format=WireFormat.YAML if args.yaml else WireFormat.JSON,
            ),
        )
    except ValidationError as exc:
        parser.error(str(exc))


def print_banner(wire_format: WireFormat, stdout: TextIO) -> None:
    """Print the dialect in use and the spacing rule for expressions."""
    print(f"\nRemote calculator with - {wire_format.value.upper()}\n", file=stdout)
    print("WRONG Expression:   10+4/2 (Without spaces)", file=stdout)
    print("CORRECT Expression: 10 + 4 / 2 (With spaces)\n", file=stdout)


def run_prompt(
    client: RequesterClient,
    show_tree: bool = False,
    stdin: TextIO = sys.stdin,
    stdout: TextIO = sys.stdout,
) -> None:
    """
    Read one expression per line, evaluate it remotely and print the result, until EOF.

    Errors are printed and the prompt moves on to the next line.

    :param RequesterClient client: Client connected to the evaluator
    :param bool show_tree: Print the tree, in order, before sending it
    :param TextIO stdin: Input stream
    :param TextIO stdout: Output stream

    :return: None
    """
    print_banner(client.wire_format, stdout)

    while True:
        stdout.write("Expression: ")
        stdout.flush()
        line = stdin.readline()
        # Empty string means end of input
        if not line:
            break
        expr = line.rstrip("\r\n")

        try:
            if show_tree:
                tree = ExpressionParser.parse(expr)
                if tree is not None:
                    print("Tree: " + to_infix(tree), file=stdout)
            result = client.compute(expr)
        except CalculatorError as exc:
            print(f"Error: {exc}\n", file=stdout)
            continue
        except OSError as exc:
            logger.error(f"🔌❌ Did not connect: {exc}")
            print(f"Error: cannot reach evaluator: {exc}\n", file=stdout)
            continue

        print(f"Result: {result}\n", file=stdout)


def run_server(settings: Settings) -> None:
    """
    Start the evaluator.

    The server runs in its own process and listens
    for incoming socket connections.
    """
    server = EvaluatorServer.from_settings(settings)
    server.start()


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Main function, also installed as the ``expression-tree-calc`` script.
    """
    cli_args = parse_args(argv)
    settings: Settings = cli_args.settings
    client = RequesterClient.from_settings(settings)

    try:
        if cli_args.command == "serve":
            run_server(settings)
        elif cli_args.command == "prompt":
            run_prompt(client, show_tree=cli_args.show_tree)
        else:
            print("Starting server... ", end="", flush=True)
            server_process = Process(target=run_server, args=(settings,))
            server_process.start()

            # Give the server time to start listening
            time.sleep(1)
            if not server_process.is_alive():
                print("FAILED")
                sys.exit(1)
            print("OK")

            try:
                run_prompt(client, show_tree=cli_args.show_tree)
            finally:
                # Ensure the server is always stopped
                server_process.terminate()
                server_process.join()
    except ServerStartupError:
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")


if __name__ == "__main__":
    main()

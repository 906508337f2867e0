# FILE PATH: repopac.py
# LOCATION: Root directory of your project
# DESCRIPTION: Main script for packaging a repository into one LLM-friendly Markdown document

"""
Repository packager producing a single Markdown document for LLM consumption.
Each directory target yields:
1. File system location (absolute, forward slashes)
2. Git repository marker
3. Indented directory structure
4. File contents in fenced code blocks, truncated at 16KB

Single file targets yield only the file contents section. Everything is
buffered in memory and written to stdout in one final write.
"""

import argparse
import io
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import tiktoken
from tqdm import tqdm

TOOL_NAME = "repopac"
VERSION = "0.1.0"
DEFAULT_LOG_FILE = "repopac.log"

MAX_BYTES = 16 * 1024
INDENT = "  "

# Exact option strings accepted on the command line
SHORT_CIRCUIT_OPTIONS = {"-h", "--help", "-v", "--version"}
FLAG_OPTIONS = {"--count-tokens", "--progress", "--enable-logging"}
VALUE_OPTIONS = {"--output", "--log-file"}

# Fence tags by extension; anything else gets a bare fence
LANGUAGE_TAGS = {
    ".json": "json",
    ".js": "javascript",
    ".cpp": "cpp",
    ".hpp": "cpp",
}


def setup_logging(log_file: str = DEFAULT_LOG_FILE, enable_logging: bool = False):
    """Configure logging: diagnostics to stderr, optional detailed log file."""
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.WARNING)
    console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    handlers = [console]

    if enable_logging:
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if enable_logging else logging.WARNING,
        handlers=handlers,
    )


def count_tokens(text: str) -> int:
    """Count tokens in text using tiktoken."""
    encoding = tiktoken.get_encoding("cl100k_base")
    return len(encoding.encode(text))


def classify_path(path: str) -> str:
    """Classify a target as 'directory', 'file', 'missing' or 'other'."""
    if not os.path.exists(path):
        return "missing"
    if os.path.isdir(path):
        return "directory"
    if os.path.isfile(path):
        return "file"
    return "other"


def is_git_repo(directory: str) -> bool:
    return os.path.isdir(os.path.join(directory, ".git"))


def language_tag(path: str) -> str:
    """Infer the code fence language tag from the file extension."""
    return LANGUAGE_TAGS.get(os.path.splitext(path)[1], "")


def list_entries(directory: str) -> List[os.DirEntry]:
    """Return the immediate children of a directory sorted by name."""
    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except OSError as e:
        logging.warning(f"Cannot list directory {directory}: {str(e)}")
        return []

    return sorted(entries, key=lambda entry: entry.name)


def _walk(directory: str, depth: int, files: List[str], lines: List[str]) -> None:
    indent = INDENT * depth

    for entry in list_entries(directory):
        # Symlinks are neither dirs nor files here, so links never recurse
        try:
            if entry.is_dir(follow_symlinks=False):
                lines.append(f"{indent}{entry.name}/\n")
                _walk(entry.path, depth + 1, files, lines)
            elif entry.is_file(follow_symlinks=False):
                lines.append(f"{indent}{entry.name}\n")
                files.append(entry.path)
            else:
                logging.debug(f"Skipping non-regular entry: {entry.path}")
        except OSError as e:
            logging.warning(f"Cannot stat {entry.path}: {str(e)}")


def walk_tree(root: str) -> Tuple[List[str], str]:
    """
    Walk a directory depth-first in name order.

    Returns the flattened list of regular files and the indented structure
    text (two spaces per level, directories suffixed with '/'). A root that
    is not a directory yields empty results.
    """
    files: List[str] = []
    lines: List[str] = []

    if os.path.isdir(root):
        _walk(root, 0, files, lines)

    return files, "".join(lines)


def read_file_head(path: str, max_bytes: int = MAX_BYTES) -> Tuple[bytes, int]:
    """Read at most max_bytes from a file; return the bytes and the full size."""
    with open(path, "rb") as f:
        size = os.fstat(f.fileno()).st_size
        data = f.read(max_bytes)
    return data, size


def render_file(out, path: str, max_bytes: int = MAX_BYTES) -> None:
    """
    Append one file's header and fenced content block to the report.

    Content is cut at exactly max_bytes bytes with no regard for character
    boundaries; surrogateescape keeps the bytes intact until the final write.
    Unreadable files are logged and rendered with an empty body.
    """
    out.write(f"### File: {path}\n")
    out.write(f"```{language_tag(path)}\n")

    try:
        data, size = read_file_head(path, max_bytes)
    except OSError as e:
        logging.error(f"Could not open file {path}: {str(e)}")
    else:
        out.write(data.decode("utf-8", errors="surrogateescape"))
        if size <= max_bytes:
            out.write("\n")
        else:
            logging.info(f"Truncated {path}: {size} bytes, showing {max_bytes}")
            out.write(
                f"\n... (truncated; original {size} bytes, "
                f"showing first {max_bytes} bytes)\n"
            )

    out.write("```\n\n")


def render_directory(out, root: str, show_progress: bool = False) -> None:
    """Append the full repository context section for a directory root."""
    out.write("# Repository Context\n\n")

    out.write("## File System Location\n\n")
    out.write(f"{Path(root).resolve().as_posix()}\n\n")

    if is_git_repo(root):
        out.write("## Git Info\n\n")
    else:
        out.write("Not a git repository\n\n")

    files, structure = walk_tree(root)
    logging.info(f"Found {len(files)} files under {root}")

    out.write("## Structure\n")
    out.write("```\n")
    out.write(structure)
    out.write("```\n\n")

    if files:
        out.write("## File Contents\n\n")
        for file_path in tqdm(
            files, desc="Rendering files", unit="file", disable=not show_progress
        ):
            render_file(out, file_path)


def render_target(out, target: str, show_progress: bool = False) -> bool:
    """Classify a target and render it; return False if it was skipped."""
    kind = classify_path(target)

    if kind == "directory":
        render_directory(out, target, show_progress)
    elif kind == "file":
        out.write("## File Contents\n\n")
        render_file(out, target)
    elif kind == "missing":
        logging.warning(f"{target} is not a valid directory or file")
        return False
    else:
        logging.warning(f"{target} is not a directory or regular file, skipping")
        return False

    return True


def build_report(targets: List[str], show_progress: bool = False) -> str:
    """Render every target in order into one Markdown report."""
    out = io.StringIO()
    for target in targets:
        render_target(out, target, show_progress)
    return out.getvalue()


def safe_write_to_output(output_file, content: str):
    """Write the report byte-exactly, preferring the stream's binary layer."""
    buffer = getattr(output_file, "buffer", None)
    if buffer is not None:
        output_file.flush()
        buffer.write(content.encode("utf-8", errors="surrogateescape"))
        buffer.flush()
        return

    try:
        output_file.write(content)
    except UnicodeEncodeError:
        # Text-only stream that cannot take the content as is
        safe_content = content.encode("ascii", "replace").decode("ascii")
        output_file.write(safe_content)
        logging.warning("Content written with ASCII fallback due to encoding issues")


class RepoPacArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors with exit status 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{message}\nUse -h or --help for usage.\n")


def build_parser() -> RepoPacArgumentParser:
    parser = RepoPacArgumentParser(
        prog=TOOL_NAME,
        description="Package a repository's content into a single Markdown document",
        epilog="Each PATH may be a directory or a file (default: .)",
        allow_abbrev=False,
    )

    parser.add_argument(
        "paths",
        nargs="*",
        metavar="PATH",
        help="Directories or files to package, in order",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"{TOOL_NAME} {VERSION}",
        help="Show version and exit",
    )

    # Output configuration
    parser.add_argument(
        "--output",
        default=None,
        help="Write the report to this file instead of stdout",
    )
    parser.add_argument(
        "--count-tokens",
        action="store_true",
        default=False,
        help="Print the report's token count (cl100k_base) to stderr",
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        default=False,
        help="Show a progress bar on stderr while rendering files",
    )

    # Logging configuration
    parser.add_argument(
        "--enable-logging",
        action="store_true",
        default=False,
        help="Enable detailed logging to file",
    )
    parser.add_argument(
        "--log-file",
        default=DEFAULT_LOG_FILE,
        help=f"Log file path (default: {DEFAULT_LOG_FILE})",
    )

    return parser


def check_options(parser: RepoPacArgumentParser, argv: List[str]) -> None:
    """
    Reject unknown options in command line order.

    Any token starting with '-' must be an exact option string; this covers
    '-', '--', negative-number-like tokens and bundled short flags. Scanning
    stops at help or version, which exit before later tokens are looked at.
    """
    expect_value = False
    for token in argv:
        if expect_value:
            expect_value = False
            continue
        if not token.startswith("-"):
            continue
        if token in SHORT_CIRCUIT_OPTIONS:
            return
        if token in VALUE_OPTIONS:
            expect_value = True
            continue
        if token in FLAG_OPTIONS:
            continue
        if "=" in token and token.split("=", 1)[0] in VALUE_OPTIONS:
            continue
        parser.error(f"Unknown option: {token}")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse options and paths in any order; unknown options exit with 1."""
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    check_options(parser, argv)
    args, extras = parser.parse_known_intermixed_args(argv)

    for token in extras:
        if token.startswith("-"):
            parser.error(f"Unknown option: {token}")
    args.paths = list(args.paths or []) + extras

    if not args.paths:
        args.paths = ["."]

    return args


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    setup_logging(args.log_file, args.enable_logging)
    logging.info(f"Packaging targets: {args.paths}")

    report = build_report(args.paths, show_progress=args.progress)

    if args.output:
        with open(
            args.output, "w", encoding="utf-8", errors="surrogateescape"
        ) as output_file:
            safe_write_to_output(output_file, report)
        logging.info(f"Output written to: {args.output}")
    else:
        safe_write_to_output(sys.stdout, report)

    if args.count_tokens:
        total_tokens = count_tokens(report)
        logging.info(f"Total tokens: {total_tokens}")
        print(f"Total tokens: {total_tokens:,}", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())

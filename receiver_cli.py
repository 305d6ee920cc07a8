import argparse, glob, json, logging, os
from record_share.core.logger import setup_logger
from record_share.core.accumulator import Invalid, Progress
from record_share.core.sharing import ReceiveSession

IMAGE_PATTERNS = ('*.png', '*.jpg', '*.jpeg')


def iter_scanned_texts(frames_dir):
    from record_share.core.decoding_qr import scan_file

    paths = sorted(p for pattern in IMAGE_PATTERNS for p in glob.glob(os.path.join(frames_dir, pattern)))
    if not paths:
        print("No QR images found.")
    for fp in paths:
        texts = scan_file(fp)
        if not texts:
            print(f"Failed to decode {os.path.basename(fp)}")
        for text in texts:
            yield text


def iter_text_lines(path):
    with open(path, encoding='utf-8') as f:
        for line in f:
            line = line.rstrip('\n')
            if line:
                yield line


def receive(texts, session):
    """Feed texts until a record is complete. Returns the finishing ReceiveResult or None."""
    for text in texts:
        result = session.feed(text)
        outcome = result.outcome
        if result.done:
            return result
        if isinstance(outcome, Invalid):
            print(f"Rejected: {outcome.message}")
        elif isinstance(outcome, Progress):
            note = " (duplicate)" if outcome.is_duplicate else ""
            print(f"Segment {outcome.latest_index}/{outcome.total_count}{note}: "
                  f"{outcome.collected_count} collected")
    return None


def main(argv=None):
    ap = argparse.ArgumentParser(description="Reassemble a record from scanned QR codes")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument('--frames', help='Directory containing QR images')
    src.add_argument('--segments', help='Text file with one scanned string per line')
    ap.add_argument('--out', required=True, help='Output JSON file for the reconstructed record')
    ap.add_argument('--verbose', action='store_true')
    args = ap.parse_args(argv)
    setup_logger(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.frames:
        if not os.path.isdir(args.frames):
            raise SystemExit('Frames directory not found')
        texts = iter_scanned_texts(args.frames)
    else:
        if not os.path.isfile(args.segments):
            raise SystemExit('Segments file not found')
        texts = iter_text_lines(args.segments)

    session = ReceiveSession()
    result = receive(texts, session)
    if result is None:
        acc = session.accumulator
        if acc.is_collecting:
            raise SystemExit(f"Incomplete: {acc.collected_count}/{acc.expected_total} segments, "
                             f"missing {acc.missing_indices}")
        raise SystemExit("No complete record was received")

    out_dir = os.path.dirname(os.path.abspath(args.out))
    os.makedirs(out_dir, exist_ok=True)
    with open(args.out, 'w', encoding='utf-8') as f:
        json.dump(result.value, f, indent=2, ensure_ascii=False)
    print(f"Record written to {args.out}")


if __name__ == '__main__':
    main()

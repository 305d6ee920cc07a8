import argparse, json, logging, os
from record_share.core.logger import setup_logger
from record_share.core.codec import PayloadError
from record_share.core.segmenting import DEFAULT_MAX_LENGTH, PayloadTooLargeForSegmentSizeError
from record_share.core.sharing import prepare_share
from record_share.core.encoding_qr import save_qr_frames, DEFAULT_SCALE, DEFAULT_BORDER


def write_text_outputs(bundle, out_dir):
    with open(os.path.join(out_dir, 'encoded_payload.txt'), 'w', encoding='utf-8') as f:
        f.write(bundle.encoded_payload)
    with open(os.path.join(out_dir, 'segments.txt'), 'w', encoding='utf-8') as f:
        for wire in bundle.wire_strings:
            f.write(wire + '\n')


def main(argv=None):
    ap = argparse.ArgumentParser(description="Render a JSON record as a sequence of QR codes")
    ap.add_argument('--input', required=True, help='JSON file holding the record to share')
    ap.add_argument('--out', required=True, help='Output directory for QR images')
    ap.add_argument('--max-length', type=int, default=DEFAULT_MAX_LENGTH, help='Maximum characters per QR code')
    ap.add_argument('--scale', type=int, default=DEFAULT_SCALE)
    ap.add_argument('--border', type=int, default=DEFAULT_BORDER)
    ap.add_argument('--allow-truncation', action='store_true',
                    help='Keep only the head of the payload when it cannot be segmented (lossy)')
    ap.add_argument('--verbose', action='store_true')
    args = ap.parse_args(argv)
    setup_logger(level=logging.DEBUG if args.verbose else logging.INFO)

    if not os.path.isfile(args.input):
        raise SystemExit('Input file not found')
    with open(args.input, encoding='utf-8') as f:
        try:
            record = json.load(f)
        except json.JSONDecodeError as e:
            raise SystemExit(f'Input is not valid JSON: {e}')

    try:
        bundle = prepare_share(record, max_length=args.max_length, allow_truncation=args.allow_truncation)
    except (PayloadError, PayloadTooLargeForSegmentSizeError) as e:
        raise SystemExit(str(e))

    os.makedirs(args.out, exist_ok=True)
    write_text_outputs(bundle, args.out)
    written = save_qr_frames(bundle.segments, args.out, scale=args.scale, border=args.border)
    print(f"Generated {len(written)} QR code(s) for a {len(bundle.encoded_payload)} character payload.")
    print("Frames written to", args.out)


if __name__ == '__main__':
    main()

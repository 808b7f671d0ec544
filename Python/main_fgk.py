import os
import sys
import time
import tracemalloc

import psutil

import fgk

OUTPUT_FILE = "compr_fgk.dat"
EXPANDED_FILE = "orig_fgk.txt"

_printed_header = False


def file_size(file_name: str) -> int:
    try:
        return os.stat(file_name).st_size
    except FileNotFoundError:
        return 0


def print_ratios(input_size: int, output_size: int):
    reduction = 100 - (output_size * 100 / input_size) if input_size else 0.0

    print("Compression success! files match 100%")
    print("======================================")
    print(f"{'Original file size: ':<22}| {input_size}B")
    print(f"{'Compressed size: ':<22}| {output_size}B")
    print(f"{'Reduction: ':<22}| {reduction:.2f}%")


def track_performance(name, func, *args, **kwargs):
    global _printed_header

    process = psutil.Process(os.getpid())
    start_time = time.time()
    start_cpu = process.cpu_times().user
    tracemalloc.start()
    start_mem = tracemalloc.get_traced_memory()[0]

    try:
        result = func(*args, **kwargs)
        end_mem = tracemalloc.get_traced_memory()[1]
    finally:
        tracemalloc.stop()
    end_cpu = process.cpu_times().user
    end_time = time.time()

    wall_time_ms = (end_time - start_time) * 1000
    cpu_time_ms = (end_cpu - start_cpu) * 1000
    mem_used_kb = (end_mem - start_mem) / 1024

    if not _printed_header:
        print(f"{'Function':<20} {'Wall Time (ms)':>15} {'CPU Time (ms)':>15} {'Memory Used (KB)':>20}")
        _printed_header = True

    print(f"{name:<20} {wall_time_ms:15.2f} {cpu_time_ms:15.2f} {mem_used_kb:20.2f}")

    return result


def short_program_name(prog_name: str) -> str:
    short_name = prog_name
    last_slash = max(prog_name.rfind('\\'), prog_name.rfind('/'), prog_name.rfind(':'))
    if last_slash != -1:
        short_name = prog_name[last_slash + 1:]
    extension = short_name.rfind('.')
    if extension != -1:
        short_name = short_name[:extension]
    return short_name


def files_are_equal(file1: str, file2: str) -> bool:
    if file_size(file1) != file_size(file2):
        return False
    with open(file1, "rb") as f1, open(file2, "rb") as f2:
        while True:
            block1 = f1.read(4096)
            block2 = f2.read(4096)
            if block1 != block2:
                return False
            if not block1:
                return True


def main(argv=None) -> int:
    arguments = sys.argv if argv is None else argv
    if len(arguments) < 2:
        print(f"\nUsage:  {short_program_name(arguments[0] if arguments else 'main_fgk')} {fgk.USAGE}")
        return 1

    input_path = arguments[1]
    remaining_args = arguments[2:]
    try:
        with open(input_path, 'rb') as input_file:
            print(f"\nCompressing {input_path} to {OUTPUT_FILE}")
            print(f"Using {fgk.COMPRESSION_NAME}\n")
            with open(OUTPUT_FILE, 'wb') as output_file:
                track_performance("CompressFile", fgk.compress_file, input_file, output_file, remaining_args)

        print(f"\nDecompressing {OUTPUT_FILE} to {EXPANDED_FILE}")
        with open(OUTPUT_FILE, 'rb') as input_file, open(EXPANDED_FILE, 'wb') as output_file:
            track_performance("ExpandFile", fgk.expand_file, input_file, output_file, remaining_args)

        print("\nTesting files...")
        if not files_are_equal(input_path, EXPANDED_FILE):
            print("error encoding data... files do not match!", file=sys.stderr)
            return 1
        print_ratios(file_size(input_path), file_size(OUTPUT_FILE))
    except FileNotFoundError:
        print(f"Error: Input file '{input_path}' not found.")
        return 1
    except OSError as e:
        print(f"Error opening file: {e}")
        return 1
    except Exception as e:
        print(f"An error occurred: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())

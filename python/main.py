#!/usr/bin/env python3
"""s3_multipart - エントリーポイント"""
import sys

from s3_multipart import S3Multipart


def main():
    """メイン関数"""
    config_path = sys.argv[1] if len(sys.argv) > 1 else "config.json"
    try:
        runner = S3Multipart(config_path)
        successful, failed = runner.run()
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)

    sys.exit(0 if failed == 0 else 1)


if __name__ == "__main__":
    main()

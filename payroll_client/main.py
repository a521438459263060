# payroll_client/main.py
import argparse
import asyncio
import json
import logging
import os
import sys

from payroll_client.client import EXPORT_FORMATS, PayrollAPIError, PayrollClient
from payroll_client.config import settings

logger = logging.getLogger(__name__)


def configure_logging():
    handlers = [logging.StreamHandler()]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE, encoding="utf-8"))

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Payroll import and backup client')

    parser.add_argument('--server', '-s', type=str, default=settings.SERVER_URL,
                        help='Server URL')

    subparsers = parser.add_subparsers(dest='command', required=True)

    preview = subparsers.add_parser('preview', help='Upload a workbook and show the pending changes')
    preview.add_argument('file', help='Workbook (.xlsx or .xls) to import')
    preview.add_argument('--key-column', '-k', default=settings.DEFAULT_KEY_COLUMN,
                         help='Column used to match rows to employees')

    subparsers.add_parser('confirm', help='Apply the pending import')

    import_cmd = subparsers.add_parser('import', help='Preview and confirm a workbook in one step')
    import_cmd.add_argument('file', help='Workbook (.xlsx or .xls) to import')
    import_cmd.add_argument('--key-column', '-k', default=settings.DEFAULT_KEY_COLUMN,
                            help='Column used to match rows to employees')

    subparsers.add_parser('backup', help='Create a backup snapshot')
    subparsers.add_parser('backups', help='List backup snapshots')

    restore = subparsers.add_parser('restore', help='Restore a backup snapshot')
    restore.add_argument('filename', help='Backup file name as shown by "backups"')

    export = subparsers.add_parser('export', help='Download all employees')
    export.add_argument('format', choices=EXPORT_FORMATS)
    export.add_argument('--output', '-o', required=True, help='Output file path')

    return parser


def _print(data):
    print(json.dumps(data, indent=2, ensure_ascii=False))


async def run_command(client: PayrollClient, args: argparse.Namespace) -> int:
    if args.command in ('preview', 'import') and not os.path.exists(args.file):
        logger.error(f"Workbook not found: {args.file}")
        return 1

    if args.command == 'preview':
        _print(await client.preview_import(args.file, args.key_column))
    elif args.command == 'confirm':
        _print(await client.confirm_import())
    elif args.command == 'import':
        _print(await client.import_file(args.file, args.key_column))
    elif args.command == 'backup':
        _print(await client.create_backup())
    elif args.command == 'backups':
        _print(await client.list_backups())
    elif args.command == 'restore':
        _print(await client.restore_backup(args.filename))
    elif args.command == 'export':
        size = await client.export(args.format, args.output)
        logger.info(f"Export written: {args.output} ({size} bytes)")
    return 0


async def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    client = PayrollClient(server_url=args.server)

    try:
        await client.initialize()
        return await run_command(client, args)
    except PayrollAPIError as e:
        logger.error(f"Server rejected request: {e.detail} (status {e.status})")
        return 1
    except Exception as e:
        logger.error(f"Error: {str(e)}")
        return 1
    finally:
        await client.close()


def run():
    configure_logging()
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Process interrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    run()

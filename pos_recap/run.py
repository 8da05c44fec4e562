"""
アプリケーション起動スクリプト
"""
import argparse
import os
import sys
from datetime import timedelta
from pathlib import Path
from zoneinfo import ZoneInfo


def serve(args):
    """APIサーバーを起動"""
    # 環境変数に設定
    os.environ['PORT'] = str(args.port)
    os.environ['HOST'] = args.host
    if args.debug:
        os.environ['DEBUG'] = 'true'

    # アプリケーション作成
    from pos_recap.backend.api import create_app
    app = create_app()

    print(f"""
============================================================
  POS 売上集計システム
============================================================
  サーバー起動中...
  URL: http://{args.host}:{args.port}

  停止するには Ctrl+C を押してください
============================================================
    """)

    # サーバー起動
    app.run(
        host=args.host,
        port=args.port,
        debug=args.debug
    )
    return 0


def export(args):
    """売上レポートをExcel出力"""
    from pos_recap.backend.aggregator import (
        NothingToExportError, PeriodFilter, ReportExporter, SalesRecap
    )
    from pos_recap.backend.api import parse_reference_date
    from pos_recap.backend.services import TransactionStore
    from pos_recap.config import get_config

    config = get_config()
    tz = ZoneInfo(config.TIMEZONE)
    offset = timedelta(hours=config.BUSINESS_DAY_OFFSET_HOURS)

    db_path = Path(args.db) if args.db else config.DB_PATH
    store = TransactionStore(db_path, tz=tz, strict_totals=config.STRICT_TOTALS)

    try:
        reference_date = parse_reference_date(args.date, tz, offset)
        period_filter = PeriodFilter(args.period, reference_date, offset=offset, tz=tz)
    except ValueError as e:
        print(f"エラー: {e}", file=sys.stderr)
        return 2

    records = period_filter.apply(store.load_transactions())
    exporter = ReportExporter(
        records,
        SalesRecap(records).calculate(),
        reference_date=period_filter.reference_date,
        tz=tz
    )
    try:
        filepath = exporter.export(Path(args.output_dir) if args.output_dir else config.OUTPUT_DIR)
    except NothingToExportError as e:
        print(str(e))
        return 1

    print(f"出力完了: {filepath}")
    return 0


def build_parser():
    """引数パーサーを作成"""
    parser = argparse.ArgumentParser(
        description='POS 売上集計システム'
    )
    subparsers = parser.add_subparsers(dest='command')

    serve_parser = subparsers.add_parser('serve', help='APIサーバーを起動（デフォルト）')
    serve_parser.add_argument(
        '--port', '-p',
        type=int,
        default=int(os.getenv('PORT', 8080)),
        help='サーバーポート番号（デフォルト: 8080）'
    )
    serve_parser.add_argument(
        '--host',
        type=str,
        default=os.getenv('HOST', '127.0.0.1'),
        help='ホストアドレス（デフォルト: 127.0.0.1）'
    )
    serve_parser.add_argument(
        '--debug',
        action='store_true',
        help='デバッグモードで起動'
    )
    serve_parser.set_defaults(func=serve)

    export_parser = subparsers.add_parser('export', help='売上レポートをExcel出力')
    export_parser.add_argument(
        '--period',
        choices=['daily', 'monthly', 'yearly'],
        default='daily',
        help='集計粒度（デフォルト: daily）'
    )
    export_parser.add_argument(
        '--date',
        type=str,
        default=None,
        help='基準日（YYYY-MM-DD または ISO日時、デフォルト: 現在）'
    )
    export_parser.add_argument(
        '--output-dir', '-o',
        type=str,
        default=None,
        help='出力ディレクトリ（デフォルト: ~/Downloads）'
    )
    export_parser.add_argument(
        '--db',
        type=str,
        default=None,
        help='データベースファイルパス'
    )
    export_parser.set_defaults(func=export)

    return parser


def main(argv=None):
    """メイン関数"""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        args = parser.parse_args(['serve'])
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())

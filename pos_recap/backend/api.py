"""
Flask APIエンドポイント
"""
from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from datetime import date, datetime, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo
import io
import logging
import math
import re

from pos_recap.backend.aggregator import (
    Granularity, NothingToExportError, PeriodFilter, ReportExporter, SalesRecap,
    TotalsMismatchError, business_day_key
)
from pos_recap.backend.aggregator.business_day import business_day_start
from pos_recap.backend.services import (
    ExpenseLog, ProductCatalog, StoredDataError, TransactionStore, build_cart, checkout
)
from pos_recap.config import get_config

# ロギング設定
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

DATE_ONLY_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def parse_reference_date(value, tz, offset) -> datetime:
    """
    基準日時パラメータを解析

    日付のみ（YYYY-MM-DD）の場合はその日の営業日開始時刻（04:00）とする。
    末尾の "Z" はUTCとして扱う。省略時は現在時刻。

    Raises:
        ValueError: 日付として解析できない場合
    """
    if not value:
        return datetime.now(tz)
    value = value.strip()
    if DATE_ONLY_PATTERN.match(value):
        return business_day_start(date.fromisoformat(value), offset, tz)
    # Python 3.10 以前の fromisoformat は "Z" を受け付けない
    if value[-1:] in ('Z', 'z'):
        value = value[:-1] + '+00:00'
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def create_app(config=None):
    """
    Flaskアプリケーションファクトリ

    Args:
        config: 設定オブジェクト

    Returns:
        Flask: アプリケーションインスタンス
    """
    app = Flask(__name__)

    # CORS設定（フロントエンドからのアクセス許可）
    CORS(app, origins=["http://localhost:*", "http://127.0.0.1:*"])

    # 設定読み込み
    config = config or get_config()
    app.config.from_object(config)
    config.init_app()

    tz = ZoneInfo(app.config['TIMEZONE'])
    offset = timedelta(hours=app.config['BUSINESS_DAY_OFFSET_HOURS'])

    # サービス初期化
    store = TransactionStore(
        Path(app.config['DB_PATH']),
        tz=tz,
        strict_totals=app.config['STRICT_TOTALS']
    )
    catalog = ProductCatalog(Path(app.config['DB_PATH']))
    expense_log = ExpenseLog(store, offset=offset)
    app.extensions['transaction_store'] = store
    app.extensions['product_catalog'] = catalog

    def _filtered_records():
        """リクエストパラメータで取引を絞り込み"""
        period = request.args.get('period', Granularity.DAILY.value)
        reference_date = parse_reference_date(request.args.get('date'), tz, offset)
        period_filter = PeriodFilter(period, reference_date, offset=offset, tz=tz)
        # 毎回全件を読み込み、そのスナップショットを絞り込む
        return period_filter, period_filter.apply(store.load_transactions())

    def _stored_data_error(e):
        """保存済みデータの不整合（クライアントの誤りではない）"""
        logger.error(f"保存データエラー: {e}")
        return jsonify({
            'status': 'error',
            'error_type': 'stored_data',
            'message': str(e)
        }), 500

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """ヘルスチェック"""
        return jsonify({'status': 'ok', 'timestamp': datetime.now(tz).isoformat()})

    @app.route('/api/recap', methods=['GET'])
    def recap():
        """売上集計"""
        try:
            period_filter, records = _filtered_records()
            result = SalesRecap(records).calculate()

            response = {
                'status': 'success',
                'period': period_filter.granularity.value,
                'reference_date': period_filter.reference_date.isoformat(),
                'summary': result.to_dict(),
                'transactions': [record.to_dict() for record in records]
            }
            if period_filter.granularity is Granularity.DAILY:
                response['business_day'] = business_day_key(
                    period_filter.reference_date, offset, tz
                ).isoformat()
            return jsonify(response)

        except (TotalsMismatchError, StoredDataError) as e:
            return _stored_data_error(e)
        except ValueError as e:
            logger.error(f"バリデーションエラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 400
        except Exception as e:
            logger.error(f"集計エラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    @app.route('/api/recap/export', methods=['GET'])
    def export_recap():
        """Excelファイルダウンロード"""
        try:
            period_filter, records = _filtered_records()
            exporter = ReportExporter(
                records,
                SalesRecap(records).calculate(),
                reference_date=period_filter.reference_date,
                tz=tz
            )
            data = exporter.to_bytes()
            return send_file(
                io.BytesIO(data),
                mimetype=XLSX_MIMETYPE,
                as_attachment=True,
                download_name=exporter.filename
            )

        except NothingToExportError as e:
            logger.info(f"出力対象なし: {e}")
            return jsonify({
                'status': 'error',
                'error_type': 'nothing_to_export',
                'message': str(e)
            }), 404
        except (TotalsMismatchError, StoredDataError) as e:
            return _stored_data_error(e)
        except ValueError as e:
            logger.error(f"バリデーションエラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 400
        except Exception as e:
            logger.error(f"Excel出力エラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    @app.route('/api/checkout', methods=['POST'])
    def checkout_cart():
        """カート確定（価格は商品マスタから取得）"""
        try:
            data = request.get_json(silent=True) or {}
            cart = build_cart(data.get('items') or [], catalog)
            record = checkout(cart, data.get('payment_method'))
            store.add_transaction(record)
            return jsonify({'status': 'success', 'transaction': record.to_dict()}), 201

        except ValueError as e:
            logger.error(f"バリデーションエラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 400
        except Exception as e:
            logger.error(f"チェックアウトエラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    @app.route('/api/products', methods=['GET'])
    def list_products():
        """商品一覧（検索・ページング）"""
        try:
            page = request.args.get('page', 0, type=int)
            page_size = request.args.get('page_size', app.config['PRODUCTS_PAGE_SIZE'], type=int)
            products, total = catalog.list(
                search=request.args.get('search') or None,
                page=page,
                page_size=page_size,
                sort=request.args.get('sort', 'name'),
                descending=request.args.get('order', 'asc').lower() == 'desc'
            )
            return jsonify({
                'status': 'success',
                'products': [product.to_dict() for product in products],
                'total': total,
                'page': page,
                'page_size': page_size,
                'page_count': math.ceil(total / page_size)
            })

        except ValueError as e:
            logger.error(f"バリデーションエラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 400
        except Exception as e:
            logger.error(f"商品取得エラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    @app.route('/api/products', methods=['POST'])
    def add_product():
        """商品登録"""
        try:
            data = request.get_json(silent=True) or {}
            product = catalog.add(
                data.get('name'), data.get('selling_price'), data.get('cost_price')
            )
            return jsonify({'status': 'success', 'product': product.to_dict()}), 201

        except ValueError as e:
            logger.error(f"バリデーションエラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 400
        except Exception as e:
            logger.error(f"商品登録エラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    @app.route('/api/products/<product_id>', methods=['PUT'])
    def update_product(product_id):
        """商品更新"""
        try:
            data = request.get_json(silent=True) or {}
            if not catalog.update(
                product_id, data.get('name'), data.get('selling_price'), data.get('cost_price')
            ):
                return jsonify({'status': 'error', 'message': '商品が見つかりません'}), 404
            return jsonify({'status': 'success', 'product': catalog.get(product_id).to_dict()})

        except ValueError as e:
            logger.error(f"バリデーションエラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 400
        except Exception as e:
            logger.error(f"商品更新エラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    @app.route('/api/products/<product_id>', methods=['DELETE'])
    def delete_product(product_id):
        """商品削除"""
        try:
            if not catalog.delete(product_id):
                return jsonify({'status': 'error', 'message': '商品が見つかりません'}), 404
            return jsonify({'status': 'success'})
        except Exception as e:
            logger.error(f"商品削除エラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    @app.route('/api/expenses', methods=['GET'])
    def list_expenses():
        """本日の経費一覧"""
        try:
            expenses = expense_log.todays_expenses()
            return jsonify({
                'status': 'success',
                'expenses': [expense.to_dict() for expense in expenses],
                'total': ExpenseLog.total(expenses)
            })
        except Exception as e:
            logger.error(f"経費取得エラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    @app.route('/api/expenses', methods=['POST'])
    def add_expense():
        """経費登録"""
        try:
            data = request.get_json(silent=True) or {}
            expense = expense_log.record(data.get('description'), data.get('amount'))
            return jsonify({'status': 'success', 'expense': expense.to_dict()}), 201

        except ValueError as e:
            logger.error(f"バリデーションエラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 400
        except Exception as e:
            logger.error(f"経費登録エラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    @app.route('/api/expenses/<expense_id>', methods=['PUT'])
    def update_expense(expense_id):
        """経費更新"""
        try:
            data = request.get_json(silent=True) or {}
            if not expense_log.update(expense_id, data.get('description'), data.get('amount')):
                return jsonify({'status': 'error', 'message': '経費が見つかりません'}), 404
            return jsonify({'status': 'success'})

        except ValueError as e:
            logger.error(f"バリデーションエラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 400
        except Exception as e:
            logger.error(f"経費更新エラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    @app.route('/api/expenses/<expense_id>', methods=['DELETE'])
    def delete_expense(expense_id):
        """経費削除"""
        try:
            if not expense_log.delete(expense_id):
                return jsonify({'status': 'error', 'message': '経費が見つかりません'}), 404
            return jsonify({'status': 'success'})
        except Exception as e:
            logger.error(f"経費削除エラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    return app

"""
アプリケーション設定
"""
import os
from pathlib import Path


class Config:
    """アプリケーション設定クラス"""

    # サーバー設定
    HOST = os.getenv('HOST', '127.0.0.1')
    PORT = int(os.getenv('PORT', 8080))
    DEBUG = os.getenv('DEBUG', 'false').lower() == 'true'
    TESTING = False

    # パス設定
    APP_DIR = Path(__file__).parent
    BASE_DIR = APP_DIR.parent
    DB_PATH = Path(os.getenv('DB_PATH', str(BASE_DIR / 'pos_recap.db')))
    OUTPUT_DIR = Path(os.getenv('OUTPUT_DIR', str(Path.home() / 'Downloads')))

    # 店舗のタイムゾーン
    TIMEZONE = os.getenv('TIMEZONE', 'Asia/Jakarta')

    # 営業日の開始時刻（この時刻より前の取引は前日扱い）
    BUSINESS_DAY_OFFSET_HOURS = int(os.getenv('BUSINESS_DAY_OFFSET_HOURS', 4))

    # 保存済み合計と明細の不一致を例外にする
    STRICT_TOTALS = os.getenv('STRICT_TOTALS', 'false').lower() == 'true'

    # 商品一覧の1ページの件数
    PRODUCTS_PAGE_SIZE = int(os.getenv('PRODUCTS_PAGE_SIZE', 10))

    @classmethod
    def init_app(cls):
        """アプリケーション初期化時の設定"""
        Path(cls.OUTPUT_DIR).mkdir(parents=True, exist_ok=True)


class DevelopmentConfig(Config):
    """開発環境設定"""
    DEBUG = True


class ProductionConfig(Config):
    """本番環境設定"""
    DEBUG = False


class TestingConfig(Config):
    """テスト環境設定"""
    TESTING = True
    STRICT_TOTALS = False


# 設定マッピング
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """現在の設定を取得"""
    env = os.getenv('FLASK_ENV', 'development')
    return config.get(env, config['default'])

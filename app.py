"""
세레모니 검증 서비스
====================

Flask 앱. 검증 엔드포인트는 ``ceremony_routes`` 의 Blueprint 에 있고,
검증 보고서는 TinyDB 에 남는다.

실행:
    $ PTAU_CEREMONY_DIR=/data/ceremony python app.py
"""

import logging

from flask import Flask, jsonify
from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from ceremony_routes import ceremony_bp, init_ceremony_bp
from ptau.config import Config


def create_app(config=None, db=None):
    """앱을 만든다.

    Args:
        config: 세레모니 설정 (기본값: 환경 변수)
        db: TinyDB 인스턴스 (기본값: config.db_path 파일, ":memory:" 이면 메모리 DB)
    """
    config = config or Config()
    if db is None:
        if config.db_path == ":memory:":
            db = TinyDB(storage=MemoryStorage)  # Memory DB
        else:
            db = TinyDB(config.db_path)         # Storage DB

    app = Flask(__name__)
    init_ceremony_bp(db, config)
    app.register_blueprint(ceremony_bp)

    @app.route("/")
    def main():
        return jsonify({
            "service": "ptau-ceremony",
            "curve": config.curve,
            "ceremony_dir": config.ceremony_dir,
        })

    return app


if __name__ == "__main__":
    cfg = Config()
    logging.basicConfig(level=getattr(logging, cfg.log_level, logging.INFO))
    create_app(cfg).run(debug=False)

#!/usr/bin/env python3
"""
OCS AI entry point.
Loads the config, builds the app and runs uvicorn; Ctrl+C / SIGTERM gives
in-flight requests 5 seconds to finish.
"""
import os
import sys
import asyncio
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI

from ocs_ai.app import create_app
from ocs_ai.core.config import AppConfig, ensure_default_config, get_config_path, load_config
from ocs_ai.core.errors import ConfigError

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
SHUTDOWN_TIMEOUT = 5  # seconds allowed for in-flight requests

logger = logging.getLogger("ocs_ai")


def setup_logging() -> None:
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT, force=True)


def uvicorn_log_config() -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT},
        },
        "handlers": {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "uvicorn": {"handlers": ["default"], "level": "INFO", "propagate": False},
            "uvicorn.access": {"handlers": ["default"], "level": "INFO", "propagate": False},
        },
    }


def log_usage(config: AppConfig) -> None:
    addr = f"http://{config.server.host}:{config.server.port}"
    logger.info("=========== OCS-AI ===========")
    logger.info("服务已成功启动！")
    logger.info(f"API地址: {addr}")
    logger.info("使用说明:")
    logger.info(f"1. 将脚本中的题库地址修改为 '{addr}/query'")
    logger.info(f"2. 健康检查: {addr}/health")
    logger.info("3. 按Ctrl+C停止服务")
    logger.info("=" * 30)


async def serve(app: FastAPI, config: AppConfig, stop_event: Optional[asyncio.Event] = None) -> None:
    """
    Serve `app` on the configured address until interrupted.

    Setting `stop_event` stops the server the same way a signal does: stop
    accepting connections, then give in-flight requests SHUTDOWN_TIMEOUT
    seconds to finish.
    """
    server = uvicorn.Server(uvicorn.Config(
        app,
        host=config.server.host,
        port=config.server.port,
        log_config=uvicorn_log_config(),
        timeout_graceful_shutdown=SHUTDOWN_TIMEOUT,
    ))

    watcher = None
    if stop_event is not None:
        async def _watch():
            await stop_event.wait()
            logger.info("收到关闭信号，正在关闭服务器...")
            server.should_exit = True
        watcher = asyncio.create_task(_watch())

    logger.info(f"启动HTTP服务器: {config.server.address}")
    try:
        await server.serve()
    finally:
        if watcher is not None:
            watcher.cancel()
    logger.info("HTTP服务器已停止")


def main() -> None:
    setup_logging()
    logger.info("启动AI答题服务...")

    config_path = get_config_path()
    logger.info(f"使用配置文件: {config_path}")

    try:
        ensure_default_config(config_path)
        config = load_config(config_path)
    except OSError as e:
        logger.error(f"创建默认配置文件失败: {e}")
        sys.exit(1)
    except ConfigError as e:
        logger.error(f"加载配置失败: {e.message}")
        sys.exit(1)

    app = create_app(config)
    log_usage(config)
    asyncio.run(serve(app, config))


if __name__ == "__main__":
    main()

"""
実行環境・プロセス・リソース情報の取得モジュール

【使用方法】
from brick.common.system_inspector import SystemInspector

inspector = SystemInspector()

env = inspector.get_environment()        # EnvironmentContext（OS・ディスプレイ・ロケール・TZ）
chain = inspector.get_process_chain()    # 自プロセス → 親プロセスの ProcessInfo 列
state = inspector.get_system_state()     # SystemState（CPU・メモリ・プロセス数・サービス数）

# レコーダーのプローブ用サマリー（取得不可時は CaptureUnavailable）
procs = inspector.get_process_summary()
# => {"count": 312, "top": [{"name": "python", "pid": 1234, "cpu": 3.1, "memory": 52428800}, ...]}
services = inspector.get_service_summary()

【処理内容】
1. platform / locale / time から OS とロケール・タイムゾーンを判定
2. mss のモニター一覧から画面構成（monitors[0] は全画面結合なので除外）を取得
3. psutil でプロセスチェーン・CPU/メモリ使用量・プロセス数を取得
4. Windows では psutil.win_service_iter でサービス一覧を取得（他OSではサービス数 0）
環境・状態の取得失敗は警告ログを出してデフォルト値で継続する。

【依存】
psutil, mss, platform, locale
"""

import locale
import logging
import platform
import time
from typing import Any, Dict, List, Optional, Tuple

import mss
import mss.exception
import psutil

from brick.common.errors import CaptureUnavailable
from brick.common.models import (
    Bounds, EnvironmentContext, OSInfo, ProcessInfo, ScreenInfo, SystemState,
)

logger = logging.getLogger(__name__)

_OS_NAMES = {"Darwin": "macOS", "Windows": "Windows", "Linux": "Linux"}


def _locale_tag() -> str:
    """"ja_JP" 形式のロケールを "ja-JP" 形式に変換"""
    lang = locale.getlocale()[0] or ""
    if not lang or lang == "C":
        return "en-US"
    return lang.replace("_", "-")


def _timezone_name() -> str:
    tz = time.tzname[0] if time.tzname else ""
    return tz or "UTC"


def _process_info(proc: psutil.Process) -> ProcessInfo:
    with proc.oneshot():
        parent = proc.parent()
        return ProcessInfo(
            name=proc.name(),
            pid=proc.pid,
            path=proc.exe() or None,
            command_line=" ".join(proc.cmdline()) or None,
            parent={"name": parent.name(), "pid": parent.pid} if parent else None,
            user=proc.username(),
            start_time=proc.create_time() * 1000,
            cpu=proc.cpu_percent(interval=None),
            memory=float(proc.memory_info().rss),
            status="suspended" if proc.status() == psutil.STATUS_STOPPED else "running",
        )


class SystemInspector:
    def __init__(self, top_processes: int = 10):
        self._top_processes = top_processes

    # --- 環境 ---

    def get_screens(self) -> Tuple[ScreenInfo, ...]:
        try:
            with mss.mss() as sct:
                monitors = sct.monitors[1:]
        except (mss.exception.ScreenShotError, OSError) as e:
            logger.warning("モニター情報取得失敗、デフォルトで継続: %s", e)
            return (ScreenInfo(id=0, bounds=Bounds(0, 0, 1920, 1080), primary=True),)

        screens = []
        for i, mon in enumerate(monitors):
            screens.append(ScreenInfo(
                id=i,
                bounds=Bounds(mon["left"], mon["top"], mon["width"], mon["height"]),
                primary=(i == 0),
                scale_factor=1.0,
            ))
        return tuple(screens)

    def get_environment(self) -> EnvironmentContext:
        system = platform.system()
        return EnvironmentContext(
            os=OSInfo(
                name=_OS_NAMES.get(system, system),
                version=platform.release(),
                arch=platform.machine(),
            ),
            screens=self.get_screens(),
            locale=_locale_tag(),
            timezone=_timezone_name(),
        )

    def get_screen_resolution(self) -> Optional[Dict[str, int]]:
        screens = self.get_screens()
        if not screens:
            return None
        primary = next((s for s in screens if s.primary), screens[0])
        return {"width": int(primary.bounds.width), "height": int(primary.bounds.height)}

    # --- プロセス・リソース ---

    def get_process_chain(self) -> Tuple[ProcessInfo, ...]:
        """自プロセスから親方向へのプロセスチェーン"""
        try:
            current = psutil.Process()
            chain = [_process_info(current)]
            for parent in current.parents():
                try:
                    chain.append(_process_info(parent))
                except (psutil.AccessDenied, psutil.NoSuchProcess):
                    chain.append(ProcessInfo(name=f"pid-{parent.pid}", pid=parent.pid))
            return tuple(chain)
        except psutil.Error as e:
            logger.warning("プロセスチェーン取得失敗: %s", e)
            return ()

    def get_system_state(self) -> SystemState:
        try:
            return SystemState(
                cpu_usage=psutil.cpu_percent(interval=None),
                memory_usage=float(psutil.virtual_memory().used),
                active_processes=len(psutil.pids()),
                active_services=self._count_services(),
            )
        except psutil.Error as e:
            logger.warning("システム状態取得失敗、ゼロ値で継続: %s", e)
            return SystemState()

    def _count_services(self) -> int:
        if not hasattr(psutil, "win_service_iter"):
            return 0
        return sum(1 for s in psutil.win_service_iter() if s.status() == "running")

    # --- プローブ用サマリー ---

    def get_process_summary(self) -> Dict[str, Any]:
        """CPU使用率上位のプロセス一覧。psutil 自体が使えない場合は CaptureUnavailable"""
        try:
            procs: List[Dict[str, Any]] = []
            for proc in psutil.process_iter(["pid", "name", "cpu_percent", "memory_info"]):
                info = proc.info
                mem = info.get("memory_info")
                procs.append({
                    "name": info.get("name") or "",
                    "pid": info.get("pid"),
                    "cpu": info.get("cpu_percent") or 0.0,
                    "memory": mem.rss if mem else 0,
                })
        except psutil.Error as e:
            raise CaptureUnavailable(f"プロセス一覧取得不可: {e}") from e

        procs.sort(key=lambda p: p["cpu"], reverse=True)
        return {"count": len(procs), "top": procs[:self._top_processes]}

    def get_service_summary(self) -> Dict[str, Any]:
        """サービス一覧（Windows のみ）。非対応OSでは CaptureUnavailable"""
        if not hasattr(psutil, "win_service_iter"):
            raise CaptureUnavailable(f"サービス情報は {platform.system()} では取得できません")
        try:
            services = []
            for svc in psutil.win_service_iter():
                info = svc.as_dict(attrs=["name", "display_name", "status", "start_type", "pid"])
                services.append({
                    "name": info.get("name"),
                    "displayName": info.get("display_name"),
                    "status": info.get("status"),
                    "startType": info.get("start_type"),
                    "processId": info.get("pid"),
                })
        except psutil.Error as e:
            raise CaptureUnavailable(f"サービス一覧取得不可: {e}") from e
        return {"count": len(services), "services": services}

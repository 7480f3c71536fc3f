from launchmint.platforms.base import PlatformLauncher, PreparedLaunch, BuiltLaunch
from launchmint.platforms.pumpfun import PumpFunLauncher
from launchmint.platforms.bags import BagsLauncher
from launchmint.platforms.usd1 import Usd1Launcher

__all__ = [
    'PlatformLauncher',
    'PreparedLaunch',
    'BuiltLaunch',
    'PumpFunLauncher',
    'BagsLauncher',
    'Usd1Launcher',
]

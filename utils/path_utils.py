"""项目目录常量"""

from pathlib import Path

# 仓库根目录，config/ 与 log/ 都相对于它
BASE_DIR = Path(__file__).resolve().parents[1]

CONFIG_DIR = BASE_DIR / 'config'
LOG_DIR = BASE_DIR / 'log'

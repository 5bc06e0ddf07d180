import yaml
from typing import Any, Dict, Optional
import os
from copy import deepcopy
from loguru import logger

from jimeng_api.core.constants import DEFAULT_IMAGE_MODEL, DEFAULT_VIDEO_MODEL

DEFAULT_CONFIG: Dict[str, Any] = {
    "api": {
        "host": "0.0.0.0",
        "port": 5100,
        "reload": False,
    },
    "vendor": {
        "timeout": 45.0,
        "proxy": None,
    },
    "upload": {
        "max_size": 10,  # MB
        "download_timeout": 30.0,
    },
    "models": {
        "default_image": DEFAULT_IMAGE_MODEL,
        "default_video": DEFAULT_VIDEO_MODEL,
    },
    "log": {
        "level": "INFO",
        "file_path": "logs/app.log",
    },
}


class ConfigManager:
    def __init__(self, config_path: Optional[str] = None):
        """
        初始化配置管理器

        Args:
            config_path: 配置文件路径，默认读取环境变量 JIMENG_CONFIG 或 config/config.yaml
        """
        self.config_path = config_path or os.environ.get("JIMENG_CONFIG", "config/config.yaml")
        self.config: Dict[str, Any] = {}
        self.load_config()

    def load_config(self) -> None:
        """加载配置文件，并与默认配置深度合并"""
        file_config: Dict[str, Any] = {}
        if os.path.exists(self.config_path):
            with open(self.config_path, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f) or {}
            if not isinstance(file_config, dict):
                logger.error(f"配置文件格式错误: {self.config_path}")
                raise ValueError(f"配置文件格式错误: {self.config_path}")
        else:
            logger.warning(f"配置文件不存在，使用默认配置: {self.config_path}")

        self.config = self._deep_merge(DEFAULT_CONFIG, file_config)

    def save_config(self) -> None:
        """保存配置到文件"""
        try:
            directory = os.path.dirname(self.config_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.config_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(self.config, f, allow_unicode=True)
            logger.info(f"配置已保存到: {self.config_path}")
        except Exception as e:
            logger.error(f"保存配置失败: {str(e)}")
            raise

    def get(self, path: str, default: Any = None) -> Any:
        """
        获取配置值

        Args:
            path: 配置路径，使用点号分隔，如 'api.host'
            default: 配置项不存在或为空时返回的默认值

        Returns:
            Any: 配置值
        """
        current = self.config
        try:
            for key in path.split('.'):
                current = current[key]
        except (KeyError, TypeError):
            return default
        return default if current is None else current

    def set(self, path: str, value: Any, persist: bool = False) -> None:
        """
        设置配置值

        Args:
            path: 配置路径，使用点号分隔，如 'api.host'
            value: 要设置的值
            persist: 是否写回配置文件
        """
        keys = path.split('.')
        config = self.config

        for key in keys[:-1]:
            if key not in config:
                config[key] = {}
            elif not isinstance(config[key], dict):
                logger.error(f"配置路径无效: {path}")
                raise KeyError(f"配置路径无效: {path}")
            config = config[key]

        config[keys[-1]] = value
        if persist:
            self.save_config()
        logger.info(f"已更新配置: {path}")

    def get_section(self, section: str) -> Dict:
        """
        获取整个配置部分

        Args:
            section: 配置部分名称，如 'api'

        Returns:
            Dict: 配置部分的副本

        Raises:
            KeyError: 配置部分不存在时抛出异常
        """
        if section not in self.config:
            logger.error(f"配置部分不存在: {section}")
            raise KeyError(f"配置部分不存在: {section}")
        return deepcopy(self.config[section])

    def exists(self, path: str) -> bool:
        """检查配置项是否存在"""
        current = self.config
        for key in path.split('.'):
            if not isinstance(current, dict) or key not in current:
                return False
            current = current[key]
        return True

    @classmethod
    def _deep_merge(cls, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        result = deepcopy(base)
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls._deep_merge(result[key], value)
            else:
                result[key] = value
        return result


config_manager = ConfigManager()

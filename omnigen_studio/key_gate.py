"""
视频模式的API Key检查
Veo 需要可计费的API Key，提交前先确认已选择密钥
"""

import traceback
from typing import Optional

from .shared import StudioConfig, reload_api_key


class CredentialSelector:
    """
    宿主环境提供的密钥选择能力
    """

    def has_selected_key(self) -> bool:
        raise NotImplementedError

    def open_select_key(self) -> None:
        raise NotImplementedError


class ConfigCredentialSelector(CredentialSelector):
    """
    基于当前配置的密钥选择：选择流程即重新读取环境变量和 .env 文件
    """

    def __init__(self, config: StudioConfig, dotenv_path: Optional[str] = None):
        self.config = config
        self.dotenv_path = dotenv_path

    def has_selected_key(self) -> bool:
        return self.config.has_api_key

    def open_select_key(self) -> None:
        print("未选择API Key，尝试从环境变量重新读取...")
        reload_api_key(self.config, self.dotenv_path)


def check_and_select_key(selector: Optional[CredentialSelector], confirm: bool = False) -> bool:
    """
    检查是否已选择API Key，未选择时打开选择流程

    默认在选择流程返回后直接视为成功，并不确认密钥真的已被选中；
    此时若仍无密钥，提交请求时会因缺少凭证而失败。
    confirm=True 时会在选择后再检查一次。
    """
    if selector is None:
        # 宿主环境不支持选择密钥时，直接使用配置中的密钥
        return True

    try:
        if not selector.has_selected_key():
            selector.open_select_key()
            if confirm:
                return selector.has_selected_key()
        return True
    except Exception as e:
        print(f"密钥选择出错: {str(e)}")
        traceback.print_exc()
        return False

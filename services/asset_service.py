"""
services/asset_service.py
--------------------------
Business logic for asset accounts and the assets held inside them.
"""

import time
from dataclasses import replace
from typing import Optional

import psycopg2
from telegram.helpers import escape_markdown

from models.asset import Asset, AssetAccount
from repositories.asset_repo import AssetAccountRepository
from repositories.settings_repo import SettingsRepository
from services import metrics
from services.rate_service import ExchangeRateService, exchange_rates
from services.validation import STORE_FAILURE_MESSAGE, ValidationError, validate_asset
from utils.logger import get_logger

logger = get_logger(__name__)


class AssetService:
    """
    Manages asset accounts.

    Responsibilities:
        - Create and delete accounts (deleting removes their assets).
        - Add, edit and remove assets inside an account.
        - Render the account list with home-currency values.
    """

    def __init__(self, repo: Optional[AssetAccountRepository] = None,
                 settings_repo: Optional[SettingsRepository] = None,
                 rates: Optional[ExchangeRateService] = None):
        self.repo = repo or AssetAccountRepository()
        self.settings_repo = settings_repo or SettingsRepository()
        self.rates = rates or exchange_rates

    def find_account(self, user_id: int, key: str) -> Optional[AssetAccount]:
        """Look an account up by ID or by (case-insensitive) name."""
        key = key.strip()
        for account in self.repo.get_all(user_id):
            if account.id == key or account.name.strip().lower() == key.lower():
                return account
        return None

    def add_account(self, user_id: int, name: str) -> str:
        name = name.strip()
        if not name:
            return "⚠️ 請輸入帳戶名稱。"
        if self.find_account(user_id, name):
            return f"⚠️ 帳戶「{name}」已存在。"
        try:
            account = self.repo.add(user_id, AssetAccount(name=name))
        except psycopg2.Error as e:
            logger.error(f"Failed to add account for user {user_id}: {e}")
            return STORE_FAILURE_MESSAGE
        return f"🏦 帳戶「{account.name}」新增成功！（#{account.id}）"

    def delete_account(self, user_id: int, key: str) -> str:
        account = self.find_account(user_id, key)
        if account is None:
            return f"⚠️ 找不到帳戶：{key}"
        try:
            self.repo.delete(user_id, account.id)
        except psycopg2.Error as e:
            logger.error(f"Failed to delete account {account.id}: {e}")
            return STORE_FAILURE_MESSAGE
        return f"🗑️ 帳戶「{account.name}」及其 {len(account.assets)} 項資產已刪除。"

    def save_asset(self, user_id: int, account_key: str, asset: Asset) -> str:
        """
        Add an asset to an account, or replace the one with the same code.

        Returns:
            User-facing confirmation or error message.
        """
        account = self.find_account(user_id, account_key)
        if account is None:
            return f"⚠️ 找不到帳戶：{account_key}"
        try:
            validate_asset(asset)
        except ValidationError as e:
            return f"⚠️ {e}"

        existing = next((a for a in account.assets if a.code == asset.code), None)
        if existing is not None:
            assets = [replace(asset, id=existing.id) if a is existing else a for a in account.assets]
            action = "更新"
        else:
            asset = replace(asset, id=asset.id or str(int(time.time() * 1000)))
            assets = account.assets + [asset]
            action = "新增"
        try:
            self.repo.replace_assets(user_id, account.id, assets)
        except psycopg2.Error as e:
            logger.error(f"Failed to save asset in account {account.id}: {e}")
            return STORE_FAILURE_MESSAGE
        logger.info(f"User {user_id} {action} asset {asset.code} in account {account.id}")
        return f"✅ 資產 {asset.code} {action}成功！"

    def delete_asset(self, user_id: int, account_key: str, code: str) -> str:
        account = self.find_account(user_id, account_key)
        if account is None:
            return f"⚠️ 找不到帳戶：{account_key}"
        remaining = [a for a in account.assets if a.code != code]
        if len(remaining) == len(account.assets):
            return f"⚠️ 帳戶「{account.name}」中沒有資產 {code}。"
        try:
            self.repo.replace_assets(user_id, account.id, remaining)
        except psycopg2.Error as e:
            logger.error(f"Failed to delete asset {code} in account {account.id}: {e}")
            return STORE_FAILURE_MESSAGE
        return f"🗑️ 資產 {code} 已自帳戶「{account.name}」移除。"

    def list_accounts(self, user_id: int) -> str:
        """Accounts with their assets valued in home currency."""
        accounts = self.repo.get_all(user_id)
        if not accounts:
            return "📭 目前沒有資產帳戶。使用 /add\\_account 新增。"

        rate = self.rates.effective_rate(self.settings_repo.get(user_id))
        lines = [f"🏦 *資產帳戶*（USD/TWD {rate:.2f}）\n"]
        for account in accounts:
            lines.append(f"*{escape_markdown(account.name)}*：{metrics.account_value(account, rate):,.0f} TWD")
            for asset in account.assets:
                v = metrics.value_asset(asset, rate)
                lines.append(
                    f"  • {escape_markdown(asset.code)}（{asset.category}）{asset.units:g} × {asset.current_value:,.2f} "
                    f"{asset.currency} = {v.value_in_home:,.0f} TWD（損益 {v.profit_loss:+,.0f}）"
                )
        return "\n".join(lines)

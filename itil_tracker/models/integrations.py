"""
Configuration records for the directory (LDAP) and document storage
(SharePoint) integrations.

Neither integration is exercised by the tracker core; the only value read by
the rule engine is ``SharePointConfig.max_file_name_length``.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MAX_FILE_NAME_LENGTH = 128


@dataclass(frozen=True)
class LdapConfig:
    enabled: bool = False
    server_url: str = "ldap://ldap.example.com:389"
    base_dn: str = "dc=example,dc=com"
    bind_dn: str = "cn=admin,dc=example,dc=com"
    bind_password: str = ""
    user_search_filter: str = "(sAMAccountName=%u)"
    username_attribute: str = "sAMAccountName"
    full_name_attribute: str = "cn"
    email_attribute: str = "mail"

    def to_dict(self, include_secret: bool = False) -> dict:
        data = {
            "enabled": self.enabled,
            "server_url": self.server_url,
            "base_dn": self.base_dn,
            "bind_dn": self.bind_dn,
            "user_search_filter": self.user_search_filter,
            "username_attribute": self.username_attribute,
            "full_name_attribute": self.full_name_attribute,
            "email_attribute": self.email_attribute,
            "has_bind_password": bool(self.bind_password),
        }
        if include_secret:
            data["bind_password"] = self.bind_password
        return data


@dataclass(frozen=True)
class SharePointConfig:
    enabled: bool = False
    site_url: str = "https://example.sharepoint.com/sites/itil"
    max_file_name_length: int = DEFAULT_MAX_FILE_NAME_LENGTH

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "site_url": self.site_url,
            "max_file_name_length": self.max_file_name_length,
        }

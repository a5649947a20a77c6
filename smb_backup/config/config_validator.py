"""Configuration validation for SMB backup."""

from typing import Dict, Any


class ConfigValidator:
    """Validates SMB backup configuration."""

    REQUIRED_SECTIONS = ['source', 'share']
    REQUIRED_SHARE_FIELDS = ['server', 'name']
    REQUIRED_EMAIL_FIELDS = ['smtp_server', 'from_address', 'to_addresses']

    def validate(self, config: Dict[str, Any]) -> None:
        """Validate configuration data.

        Args:
            config: Configuration dictionary to validate.

        Raises:
            ValueError: If configuration is invalid.
        """
        self._validate_structure(config)
        self._validate_source(config['source'])
        self._validate_share(config['share'])

        if 'folder_format' in config:
            self._validate_folder_format(config['folder_format'])

        if 'mount_options' in config and config['mount_options'] is not None:
            if not isinstance(config['mount_options'], dict):
                raise ValueError("mount_options must be a mapping of option names to values")

        if config.get('email'):
            self._validate_email_config(config['email'])

    def _validate_structure(self, config: Dict[str, Any]) -> None:
        if not isinstance(config, dict):
            raise ValueError("Configuration must be a mapping")

        missing_sections = [section for section in self.REQUIRED_SECTIONS if section not in config]
        if missing_sections:
            raise ValueError(f"Missing required configuration sections: {missing_sections}")

    def _validate_source(self, source: Any) -> None:
        if not isinstance(source, str) or not source.strip():
            raise ValueError("source must be a non-empty directory path")

    def _validate_share(self, share: Any) -> None:
        """Validate the share section.

        Raises:
            ValueError: If server or share name are missing or empty.
        """
        if not isinstance(share, dict):
            raise ValueError("share must be a dictionary with 'server' and 'name'")

        missing_fields = [f for f in self.REQUIRED_SHARE_FIELDS if not share.get(f)]
        if missing_fields:
            raise ValueError(f"share missing required fields: {missing_fields}")

        if '/' in str(share['name']):
            raise ValueError(f"share name must not contain '/': {share['name']}")

    def _validate_folder_format(self, folder_format: Any) -> None:
        if not isinstance(folder_format, str) or '%' not in folder_format:
            raise ValueError(f"folder_format must be a strftime format: {folder_format!r}")
        if '/' in folder_format:
            raise ValueError("folder_format must produce a single folder name (no '/')")

    def _validate_email_config(self, email_config: Dict[str, Any]) -> None:
        """Validate email configuration.

        Args:
            email_config: Email configuration dictionary.

        Raises:
            ValueError: If email configuration is invalid.
        """
        if not isinstance(email_config, dict):
            raise ValueError("email must be a dictionary")

        missing_fields = [field for field in self.REQUIRED_EMAIL_FIELDS if field not in email_config]
        if missing_fields:
            raise ValueError(f"Email configuration missing required fields: {missing_fields}")

        if 'smtp_port' in email_config:
            try:
                port = int(email_config['smtp_port'])
                if not (1 <= port <= 65535):
                    raise ValueError()
            except (ValueError, TypeError):
                raise ValueError(f"Email configuration has invalid SMTP port: {email_config['smtp_port']}")

        to_addresses = email_config.get('to_addresses', [])
        if not isinstance(to_addresses, list) or not to_addresses:
            raise ValueError("Email to_addresses must be a non-empty list")

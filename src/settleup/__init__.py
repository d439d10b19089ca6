"""SettleUp: делим общие расходы группы и считаем, кто кому сколько должен."""

__version__ = "0.1.0"

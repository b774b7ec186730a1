"""lfslite — construção e gerenciamento de pacotes para um rootfs estilo LFS."""

__version__ = "1.0.0"

from sss_control.instructions.types import AccountMeta, Instruction

__all__ = ["AccountMeta", "Instruction"]

from .loader import load_policies, load_policies_file, parse_policy_text

__all__ = ["load_policies", "load_policies_file", "parse_policy_text"]

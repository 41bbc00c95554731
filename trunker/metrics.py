"""
Prometheus метрики trunker.
"""

from prometheus_client import Counter

# result: active, inactive, missing, error
flag_evaluations_total = Counter(
    'trunker_flag_evaluations_total',
    'Total feature flag evaluations',
    ['flag', 'result']
)

access_denied_total = Counter(
    'trunker_access_denied_total',
    'Requests rejected because a required feature flag is not active',
    ['flag']
)

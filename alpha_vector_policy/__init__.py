"""Online action selection with (offline computed) alpha-vector POMDP policies

The value function of a policy computed by a point-based planner, such as
SARSOP, is a set of alpha vectors. This package reads them from the planner's
policy files (:mod:`~alpha_vector_policy.policy_file`), evaluates them
(:mod:`~alpha_vector_policy.alphas`) and maps the resulting planner actions to
domain actions (:mod:`~alpha_vector_policy.engine`).

"""

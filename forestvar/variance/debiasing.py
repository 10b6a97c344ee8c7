"""
Objective Bayes correction of grouped jackknife variance estimates.

The between-group variance of CI-group means overstates the variance of the
forest prediction, because each group mean is itself computed from only a
few trees. Subtracting the estimated group noise removes this bias on
average, but the difference can be negative in small samples. The debiaser
instead reports the posterior mean of the true variance under a flat prior
on [0, inf), which is always nonnegative.
"""

import numpy as np
from scipy.stats import norm

from forestvar.exceptions import InsufficientDataError


class ObjectiveBayesDebiaser:
    """
    Nonnegative debiasing of a between-group variance estimate.

    Notes
    -----
    Let S be the true variance and let

        S_hat = var_between - group_noise

    be the naive unbiased estimate. S_hat is treated as approximately
    normal around S, with standard error

        se = max(var_between, group_noise) * sqrt(2 / num_good_groups)

    Under a uniform prior on S >= 0 the posterior of S is a normal
    truncated to the nonnegative half line, with mean

        E[S | S_hat] = S_hat + se * phi(S_hat / se) / Phi(S_hat / se)

    where phi and Phi are the standard normal density and CDF. The ratio
    phi / Phi is evaluated in log space so that strongly negative naive
    estimates shrink smoothly toward zero instead of producing 0 / 0.

    When the evidence is strong (many groups, small noise) the correction
    term vanishes and the result approaches ``var_between - group_noise``.

    Examples
    --------
    >>> debiaser = ObjectiveBayesDebiaser()
    >>> debiaser.debias(0.04, 0.01, 1000) > 0
    True
    """

    def debias(
        self,
        var_between: float,
        group_noise: float,
        num_good_groups: float,
    ) -> float:
        """
        Return the debiased, nonnegative variance.

        Parameters
        ----------
        var_between : float
            Mean squared deviation of the CI-group means.
        group_noise : float
            Estimated inflation of var_between due to small groups.
        num_good_groups : float
            Number of CI groups that contributed to the estimate.

        Returns
        -------
        float
            Debiased variance estimate, always >= 0.

        Raises
        ------
        InsufficientDataError
            If num_good_groups is not positive.
        """
        if num_good_groups <= 0:
            raise InsufficientDataError(
                f"num_good_groups must be positive, got {num_good_groups}"
            )

        initial_estimate = var_between - group_noise
        initial_se = max(var_between, group_noise) * np.sqrt(2.0 / num_good_groups)

        if initial_se <= 0:
            return max(initial_estimate, 0.0)

        ratio = initial_estimate / initial_se
        bayes_correction = initial_se * np.exp(norm.logpdf(ratio) - norm.logcdf(ratio))

        return max(float(initial_estimate + bayes_correction), 0.0)


_default_debiaser = ObjectiveBayesDebiaser()


def debias_variance(
    var_between: float,
    group_noise: float,
    num_good_groups: float,
) -> float:
    """
    Debias a grouped jackknife variance with the default debiaser.

    See Also
    --------
    ObjectiveBayesDebiaser.debias
    """
    return _default_debiaser.debias(var_between, group_noise, num_good_groups)

from pytest_archon import archrule


def test_limits_independence() -> None:
    """
    Rate limiter and replay guard are leaves.
    They must not know about verification, orchestration, audit or metrics.
    """
    (
        archrule("limits_are_leaves")
        .match("sacco_mfa.limits*")
        .should_not_import("sacco_mfa.verifier*")
        .should_not_import("sacco_mfa.flow*")
        .should_not_import("sacco_mfa.audit*")
        .should_not_import("sacco_mfa.observability*")
        .check("sacco_mfa", only_direct_imports=True, skip_type_checking=True)
    )


def test_factor_primitives_isolation() -> None:
    """
    Factor primitives are pure helpers used by the verifier.
    """
    (
        archrule("primitives_isolation")
        .match("sacco_mfa.mfa*")
        .should_not_import("sacco_mfa.verifier*")
        .should_not_import("sacco_mfa.flow*")
        .should_not_import("sacco_mfa.limits*")
        .check("sacco_mfa", only_direct_imports=True, skip_type_checking=True)
    )


def test_verifier_does_no_io() -> None:
    """
    The verifier decides; persisting, auditing and metrics belong to the caller.
    """
    (
        archrule("verifier_layering")
        .match("sacco_mfa.verifier")
        .should_not_import("sacco_mfa.flow*")
        .should_not_import("sacco_mfa.audit*")
        .should_not_import("sacco_mfa.observability*")
        .should_not_import("sacco_mfa.state*")
        .check("sacco_mfa", only_direct_imports=True, skip_type_checking=True)
    )


def test_core_does_not_import_web_stack() -> None:
    """
    Only the payload module may depend on pydantic.
    """
    (
        archrule("pydantic_only_in_payloads")
        .match("sacco_mfa*")
        .exclude("sacco_mfa.payloads")
        .should_not_import("pydantic*")
        .check("sacco_mfa", only_direct_imports=True, skip_type_checking=True)
    )

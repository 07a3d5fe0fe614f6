"""
Composition-root do *clinic_billing*.

• Carregado apenas depois que Django já aplicou as `settings`.
• `build_container` monta um container novo (testes injetam um FixedClock);
  `setup_di_container_from_settings` devolve sempre o mesmo singleton.
"""
from dependency_injector import containers, providers

container = None  # type: ignore


# ────────────────────────────────────────────────────────────────────
def build_container(settings, clock=None):                            # noqa: PLR0915
    import structlog

    from clinic_billing.adapters.gateways.local_gateways import (
        LocalBoletoGateway,
        LocalCardGateway,
        LocalPixGateway,
    )
    from clinic_billing.adapters.notifiers.log_notifier import LogNotifier
    from clinic_billing.adapters.observability.metrics import BillingMetrics
    from clinic_billing.adapters.repositories.audit_repo_impl import AuditRepoImpl
    from clinic_billing.adapters.repositories.insurance_claim_repo_impl import InsuranceClaimRepoImpl
    from clinic_billing.adapters.repositories.invoice_repo_impl import InvoiceRepoImpl
    from clinic_billing.adapters.repositories.payment_plan_repo_impl import PaymentPlanRepoImpl
    from clinic_billing.adapters.repositories.payment_repo_impl import PaymentRepoImpl
    from clinic_billing.adapters.repositories.price_table_repo_impl import PriceTableRepoImpl
    from clinic_billing.adapters.repositories.reference_data_repo_impl import ReferenceDataRepoImpl
    from clinic_billing.adapters.repositories.sequence_repo_impl import SequenceRepoImpl
    from clinic_billing.adapters.repositories.unit_of_work_impl import DjangoUnitOfWork
    from clinic_billing.core.application.commands.insurance_commands import (
        AppealInsuranceClaimCommand,
        CreateInsuranceBatchCommand,
        CreateInsuranceClaimCommand,
        SubmitInsuranceClaimCommand,
        UpdateInsuranceClaimCommand,
    )
    from clinic_billing.core.application.commands.invoice_commands import (
        CancelInvoiceCommand,
        CreateInvoiceCommand,
        DeleteInvoiceCommand,
        SendInvoiceCommand,
        UpdateInvoiceCommand,
    )
    from clinic_billing.core.application.commands.payment_commands import (
        ConfirmPaymentCommand,
        CreatePaymentCommand,
        FailPaymentCommand,
        RecordManualPaymentCommand,
        RefundPaymentCommand,
    )
    from clinic_billing.core.application.commands.payment_plan_commands import (
        CancelPaymentPlanCommand,
        CreatePaymentPlanCommand,
        PayInstallmentCommand,
    )
    from clinic_billing.core.application.commands.price_table_commands import (
        AddPriceTableItemsCommand,
        CreatePriceTableCommand,
        UpdatePriceTableCommand,
    )
    from clinic_billing.core.application.cqrs import CommandBusImpl, QueryBusImpl
    from clinic_billing.core.application.handlers.insurance_handlers import (
        AppealInsuranceClaimHandler,
        CreateInsuranceBatchHandler,
        CreateInsuranceClaimHandler,
        GetInsuranceClaimHandler,
        ListInsuranceClaimsHandler,
        SubmitInsuranceClaimHandler,
        UpdateInsuranceClaimHandler,
    )
    from clinic_billing.core.application.handlers.invoice_handlers import (
        CancelInvoiceHandler,
        CreateInvoiceHandler,
        DeleteInvoiceHandler,
        GetInvoiceHandler,
        ListInvoicesHandler,
        SendInvoiceHandler,
        UpdateInvoiceHandler,
    )
    from clinic_billing.core.application.handlers.payment_handlers import (
        ConfirmPaymentHandler,
        CreatePaymentHandler,
        FailPaymentHandler,
        GetPaymentHandler,
        ListPaymentsHandler,
        RecordManualPaymentHandler,
        RefundPaymentHandler,
    )
    from clinic_billing.core.application.handlers.payment_plan_handlers import (
        CancelPaymentPlanHandler,
        CreatePaymentPlanHandler,
        GetPaymentPlanHandler,
        ListPaymentPlansHandler,
        PayInstallmentHandler,
    )
    from clinic_billing.core.application.handlers.price_table_handlers import (
        AddPriceTableItemsHandler,
        CreatePriceTableHandler,
        ListPriceTablesHandler,
        LookupPriceHandler,
        UpdatePriceTableHandler,
    )
    from clinic_billing.core.application.handlers.report_handlers import (
        AgingReportHandler,
        BillingStatisticsHandler,
        CashFlowReportHandler,
        DashboardHandler,
        RevenueReportHandler,
    )
    from clinic_billing.core.application.queries.insurance_queries import (
        GetInsuranceClaimQuery,
        ListInsuranceClaimsQuery,
    )
    from clinic_billing.core.application.queries.invoice_queries import GetInvoiceQuery, ListInvoicesQuery
    from clinic_billing.core.application.queries.payment_plan_queries import (
        GetPaymentPlanQuery,
        ListPaymentPlansQuery,
    )
    from clinic_billing.core.application.queries.payment_queries import GetPaymentQuery, ListPaymentsQuery
    from clinic_billing.core.application.queries.price_table_queries import (
        ListPriceTablesQuery,
        LookupPriceQuery,
    )
    from clinic_billing.core.application.queries.report_queries import (
        AgingReportQuery,
        BillingStatisticsQuery,
        CashFlowReportQuery,
        DashboardQuery,
        RevenueReportQuery,
    )
    from clinic_billing.core.application.services.billing_service import BillingFacadeService
    from clinic_billing.core.application.services.financial_report_service import FinancialReportService
    from clinic_billing.core.application.services.payment_rails import PaymentRailService
    from clinic_billing.core.application.services.price_resolver import PriceResolverService
    from clinic_billing.core.domain.entities.billing_config_entity import BillingConfigEntity
    from clinic_billing.core.domain.services.clock import SystemClock
    from clinic_billing.core.domain.services.event_dispatcher import EventDispatcher

    app_clock = clock or SystemClock()

    # ─── CONTAINER ─────────────────────────────────────────────────
    class Container(containers.DeclarativeContainer):
        wiring_config = containers.WiringConfiguration(packages=[])

        # --- configuração -----------------------------------------
        config = providers.Singleton(BillingConfigEntity.from_settings, settings)
        clock  = providers.Object(app_clock)

        # --- cross-cutting ----------------------------------------
        logger      = providers.Singleton(structlog.get_logger, __name__)
        metrics     = providers.Singleton(BillingMetrics)
        notifier    = providers.Singleton(LogNotifier)
        dispatcher  = providers.Singleton(EventDispatcher)
        command_bus = providers.Singleton(CommandBusImpl, dispatcher=dispatcher, metrics=metrics)
        query_bus   = providers.Singleton(QueryBusImpl)
        uow         = providers.Singleton(DjangoUnitOfWork)

        # --- repositórios -----------------------------------------
        invoice_repo     = providers.Singleton(InvoiceRepoImpl)
        payment_repo     = providers.Singleton(PaymentRepoImpl)
        plan_repo        = providers.Singleton(PaymentPlanRepoImpl)
        claim_repo       = providers.Singleton(InsuranceClaimRepoImpl)
        price_table_repo = providers.Singleton(PriceTableRepoImpl)
        audit_repo       = providers.Singleton(AuditRepoImpl)
        sequence_repo    = providers.Singleton(SequenceRepoImpl)
        reference_repo   = providers.Singleton(ReferenceDataRepoImpl)

        # --- gateways / serviços ----------------------------------
        card_gateway   = providers.Singleton(LocalCardGateway, clock=clock)
        pix_gateway    = providers.Singleton(LocalPixGateway, clock=clock)
        boleto_gateway = providers.Singleton(LocalBoletoGateway, clock=clock)
        rails = providers.Singleton(
            PaymentRailService,
            card_gateway=card_gateway,
            pix_gateway=pix_gateway,
            boleto_gateway=boleto_gateway,
            clock=clock,
            config=config,
        )
        price_resolver = providers.Singleton(PriceResolverService, repo=price_table_repo, clock=clock)
        report_service = providers.Singleton(
            FinancialReportService,
            invoice_repo=invoice_repo,
            payment_repo=payment_repo,
            claim_repo=claim_repo,
            reference_repo=reference_repo,
            clock=clock,
            config=config,
        )

        # --- handlers: pagamentos ---------------------------------
        create_payment_handler = providers.Singleton(
            CreatePaymentHandler,
            repo=payment_repo,
            invoice_repo=invoice_repo,
            audit_repo=audit_repo,
            uow=uow,
            clock=clock,
            rails=rails,
        )
        confirm_payment_handler = providers.Singleton(
            ConfirmPaymentHandler,
            repo=payment_repo, invoice_repo=invoice_repo, audit_repo=audit_repo, uow=uow, clock=clock,
        )
        fail_payment_handler = providers.Singleton(
            FailPaymentHandler,
            repo=payment_repo, invoice_repo=invoice_repo, audit_repo=audit_repo, uow=uow, clock=clock,
        )
        refund_payment_handler = providers.Singleton(
            RefundPaymentHandler,
            repo=payment_repo, invoice_repo=invoice_repo, audit_repo=audit_repo, uow=uow, clock=clock,
        )
        manual_payment_handler = providers.Singleton(
            RecordManualPaymentHandler,
            repo=payment_repo, invoice_repo=invoice_repo, audit_repo=audit_repo, uow=uow, clock=clock,
        )
        get_payment_handler   = providers.Factory(GetPaymentHandler, repo=payment_repo)
        list_payments_handler = providers.Factory(ListPaymentsHandler, repo=payment_repo)

        # --- handlers: faturas ------------------------------------
        send_invoice_handler = providers.Singleton(
            SendInvoiceHandler,
            repo=invoice_repo,
            reference_repo=reference_repo,
            audit_repo=audit_repo,
            uow=uow,
            clock=clock,
        )
        create_invoice_handler = providers.Factory(
            CreateInvoiceHandler,
            repo=invoice_repo,
            reference_repo=reference_repo,
            sequence_repo=sequence_repo,
            audit_repo=audit_repo,
            uow=uow,
            clock=clock,
            config=config,
            send_handler=send_invoice_handler,
        )
        update_invoice_handler = providers.Factory(
            UpdateInvoiceHandler, repo=invoice_repo, audit_repo=audit_repo, uow=uow, clock=clock,
        )
        cancel_invoice_handler = providers.Factory(
            CancelInvoiceHandler,
            repo=invoice_repo,
            payment_repo=payment_repo,
            audit_repo=audit_repo,
            uow=uow,
            clock=clock,
            refund_handler=refund_payment_handler,
        )
        delete_invoice_handler = providers.Factory(
            DeleteInvoiceHandler, repo=invoice_repo, audit_repo=audit_repo, uow=uow, clock=clock,
        )
        get_invoice_handler   = providers.Factory(GetInvoiceHandler, repo=invoice_repo)
        list_invoices_handler = providers.Factory(ListInvoicesHandler, repo=invoice_repo, clock=clock)

        # --- handlers: parcelamentos ------------------------------
        create_plan_handler = providers.Factory(
            CreatePaymentPlanHandler,
            repo=plan_repo,
            invoice_repo=invoice_repo,
            audit_repo=audit_repo,
            uow=uow,
            clock=clock,
            config=config,
            manual_payment_handler=manual_payment_handler,
        )
        pay_installment_handler = providers.Factory(
            PayInstallmentHandler,
            repo=plan_repo,
            invoice_repo=invoice_repo,
            audit_repo=audit_repo,
            uow=uow,
            clock=clock,
            config=config,
            create_payment_handler=create_payment_handler,
        )
        cancel_plan_handler = providers.Factory(
            CancelPaymentPlanHandler,
            repo=plan_repo, invoice_repo=invoice_repo, audit_repo=audit_repo, uow=uow, clock=clock,
        )
        get_plan_handler   = providers.Factory(GetPaymentPlanHandler, repo=plan_repo)
        list_plans_handler = providers.Factory(ListPaymentPlansHandler, repo=plan_repo, clock=clock)

        # --- handlers: convênios ----------------------------------
        create_claim_handler = providers.Factory(
            CreateInsuranceClaimHandler,
            repo=claim_repo,
            invoice_repo=invoice_repo,
            reference_repo=reference_repo,
            sequence_repo=sequence_repo,
            audit_repo=audit_repo,
            uow=uow,
            clock=clock,
        )
        submit_claim_handler = providers.Factory(
            SubmitInsuranceClaimHandler,
            repo=claim_repo, invoice_repo=invoice_repo, audit_repo=audit_repo, uow=uow, clock=clock,
        )
        update_claim_handler = providers.Factory(
            UpdateInsuranceClaimHandler,
            repo=claim_repo,
            invoice_repo=invoice_repo,
            reference_repo=reference_repo,
            audit_repo=audit_repo,
            uow=uow,
            clock=clock,
        )
        appeal_claim_handler = providers.Factory(
            AppealInsuranceClaimHandler,
            repo=claim_repo, invoice_repo=invoice_repo, audit_repo=audit_repo, uow=uow, clock=clock,
        )
        create_batch_handler = providers.Factory(
            CreateInsuranceBatchHandler,
            repo=claim_repo,
            invoice_repo=invoice_repo,
            sequence_repo=sequence_repo,
            audit_repo=audit_repo,
            uow=uow,
            clock=clock,
        )
        get_claim_handler   = providers.Factory(GetInsuranceClaimHandler, repo=claim_repo)
        list_claims_handler = providers.Factory(ListInsuranceClaimsHandler, repo=claim_repo)

        # --- handlers: tabelas de preço ---------------------------
        create_price_table_handler = providers.Factory(
            CreatePriceTableHandler,
            repo=price_table_repo,
            reference_repo=reference_repo,
            audit_repo=audit_repo,
            uow=uow,
            clock=clock,
        )
        update_price_table_handler = providers.Factory(
            UpdatePriceTableHandler, repo=price_table_repo, audit_repo=audit_repo, uow=uow, clock=clock,
        )
        add_price_items_handler = providers.Factory(
            AddPriceTableItemsHandler, repo=price_table_repo, audit_repo=audit_repo, uow=uow, clock=clock,
        )
        lookup_price_handler      = providers.Factory(LookupPriceHandler, resolver=price_resolver)
        list_price_tables_handler = providers.Factory(ListPriceTablesHandler, repo=price_table_repo)

        # --- handlers: relatórios ---------------------------------
        revenue_handler    = providers.Factory(RevenueReportHandler, service=report_service)
        cash_flow_handler  = providers.Factory(CashFlowReportHandler, service=report_service)
        aging_handler      = providers.Factory(AgingReportHandler, service=report_service)
        statistics_handler = providers.Factory(BillingStatisticsHandler, service=report_service)
        dashboard_handler  = providers.Factory(DashboardHandler, service=report_service)

        # --- fachada ---------------------------------------------
        billing_service = providers.Singleton(BillingFacadeService, command_bus=command_bus, query_bus=query_bus)

        # ----------------------------------------------------------
        def init(self) -> None:
            """Registra handlers em CommandBus / QueryBus e assinantes de eventos – executa 1×."""
            bus = self.command_bus()
            bus.register(CreateInvoiceCommand, self.create_invoice_handler())
            bus.register(UpdateInvoiceCommand, self.update_invoice_handler())
            bus.register(SendInvoiceCommand, self.send_invoice_handler())
            bus.register(CancelInvoiceCommand, self.cancel_invoice_handler())
            bus.register(DeleteInvoiceCommand, self.delete_invoice_handler())

            bus.register(CreatePaymentCommand, self.create_payment_handler())
            bus.register(ConfirmPaymentCommand, self.confirm_payment_handler())
            bus.register(FailPaymentCommand, self.fail_payment_handler())
            bus.register(RefundPaymentCommand, self.refund_payment_handler())
            bus.register(RecordManualPaymentCommand, self.manual_payment_handler())

            bus.register(CreatePaymentPlanCommand, self.create_plan_handler())
            bus.register(PayInstallmentCommand, self.pay_installment_handler())
            bus.register(CancelPaymentPlanCommand, self.cancel_plan_handler())

            bus.register(CreateInsuranceClaimCommand, self.create_claim_handler())
            bus.register(SubmitInsuranceClaimCommand, self.submit_claim_handler())
            bus.register(UpdateInsuranceClaimCommand, self.update_claim_handler())
            bus.register(AppealInsuranceClaimCommand, self.appeal_claim_handler())
            bus.register(CreateInsuranceBatchCommand, self.create_batch_handler())

            bus.register(CreatePriceTableCommand, self.create_price_table_handler())
            bus.register(UpdatePriceTableCommand, self.update_price_table_handler())
            bus.register(AddPriceTableItemsCommand, self.add_price_items_handler())

            qry = self.query_bus()
            qry.register(GetInvoiceQuery, self.get_invoice_handler())
            qry.register(ListInvoicesQuery, self.list_invoices_handler())
            qry.register(GetPaymentQuery, self.get_payment_handler())
            qry.register(ListPaymentsQuery, self.list_payments_handler())
            qry.register(GetPaymentPlanQuery, self.get_plan_handler())
            qry.register(ListPaymentPlansQuery, self.list_plans_handler())
            qry.register(GetInsuranceClaimQuery, self.get_claim_handler())
            qry.register(ListInsuranceClaimsQuery, self.list_claims_handler())
            qry.register(LookupPriceQuery, self.lookup_price_handler())
            qry.register(ListPriceTablesQuery, self.list_price_tables_handler())
            qry.register(RevenueReportQuery, self.revenue_handler())
            qry.register(CashFlowReportQuery, self.cash_flow_handler())
            qry.register(AgingReportQuery, self.aging_handler())
            qry.register(BillingStatisticsQuery, self.statistics_handler())
            qry.register(DashboardQuery, self.dashboard_handler())

            dispatcher = self.dispatcher()
            self.metrics().register_subscribers(dispatcher)
            self.notifier().register_subscribers(dispatcher)

    # ─── INSTANTIAÇÃO ──────────────────────────────────────────────
    built = Container()
    Container.init(built)                                                 # type: ignore[attr-defined]
    structlog.get_logger(__name__).debug("clinic_billing.container_built")
    return built


def setup_di_container_from_settings(settings):
    """
    Lazy-factory do DI container.  Pode ser chamada quantas vezes
    for necessário – sempre retorna a mesma instância.
    """
    global container                                                 # noqa: PLW0603
    if container is None:
        container = build_container(settings)
    return container

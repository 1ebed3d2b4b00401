"""Business profile step."""

import streamlit as st
from pydantic import ValidationError

from core.models import BusinessProfile
from core.wizard import WizardController


def render_profile_form(controller: WizardController) -> None:
    current = controller.state.profile

    st.markdown('<p class="main-title">Create Your Business Profile</p>', unsafe_allow_html=True)
    st.markdown(
        '<p class="main-subtitle">This context helps the AI provide personalized analysis and recommendations.</p>',
        unsafe_allow_html=True,
    )

    with st.form("business_profile"):
        sector = st.text_input(
            "Industry / Sector",
            value=current.sector if current else "",
            placeholder="e.g., SaaS, E-commerce, Retail",
        )
        kpis = st.text_area(
            "Key Performance Indicators (KPIs)",
            value=current.kpis if current else "",
            placeholder="e.g., Monthly Recurring Revenue (MRR), Customer Acquisition Cost (CAC), Churn Rate",
            height=100,
        )
        customer_types = st.text_input(
            "Primary Customer Types",
            value=current.customer_types if current else "",
            placeholder="e.g., SMBs, Enterprise clients, Individual consumers",
        )
        product_mix = st.text_input(
            "Product / Service Mix",
            value=current.product_mix if current else "",
            placeholder="e.g., Subscription tiers (Basic, Pro), One-time purchase items",
        )
        submitted = st.form_submit_button("Continue to Data Upload", use_container_width=True)

    if submitted:
        try:
            profile = BusinessProfile(
                sector=sector,
                kpis=kpis,
                customer_types=customer_types,
                product_mix=product_mix,
            )
        except ValidationError:
            st.error("Please fill in all four fields.")
            return
        controller.submit_profile(profile)
        st.rerun()

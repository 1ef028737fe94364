from beanwire.bean import (
    BeanDefinition,
    BeanStatus,
    DisposableBean,
    InitializingBean,
    new_bean,
    value_bean,
)
from beanwire.conditions import (
    And,
    Condition,
    ConditionContext,
    Not,
    OnBean,
    OnMatches,
    OnMissingBean,
    OnMissingProperty,
    OnProfile,
    OnProperty,
    OnPropertyValue,
    OnSingleCandidate,
    Or,
)
from beanwire.configurer import Configurer
from beanwire.container import Container
from beanwire.exceptions import (
    BeanWireAlreadyRefreshedError,
    BeanWireAmbiguousBeanError,
    BeanWireAmbiguousParentError,
    BeanWireAmbiguousPrimaryError,
    BeanWireBindError,
    BeanWireCircularConstructionError,
    BeanWireConditionError,
    BeanWireConfigurerCycleError,
    BeanWireContainerClosedError,
    BeanWireDestroyerCycleError,
    BeanWireDuplicateBeanError,
    BeanWireError,
    BeanWireExportConflictError,
    BeanWireInvalidBeanError,
    BeanWireInvalidTagError,
    BeanWireLifecycleError,
    BeanWireMissingPropertyError,
    BeanWireNoSuchBeanError,
    BeanWireNotRefreshedError,
    BeanWirePropertyCycleError,
    BeanWirePropertyError,
    BeanWireRegisterAfterRefreshError,
)
from beanwire.markers import (
    Autowire,
    Autowired,
    Const,
    Export,
    Inject,
    Logger,
    Option,
    Parent,
    Value,
)
from beanwire.properties import Properties
from beanwire.supervisor import CancelContext

__all__ = [
    "And",
    "Autowire",
    "Autowired",
    "BeanDefinition",
    "BeanStatus",
    "BeanWireAlreadyRefreshedError",
    "BeanWireAmbiguousBeanError",
    "BeanWireAmbiguousParentError",
    "BeanWireAmbiguousPrimaryError",
    "BeanWireBindError",
    "BeanWireCircularConstructionError",
    "BeanWireConditionError",
    "BeanWireConfigurerCycleError",
    "BeanWireContainerClosedError",
    "BeanWireDestroyerCycleError",
    "BeanWireDuplicateBeanError",
    "BeanWireError",
    "BeanWireExportConflictError",
    "BeanWireInvalidBeanError",
    "BeanWireInvalidTagError",
    "BeanWireLifecycleError",
    "BeanWireMissingPropertyError",
    "BeanWireNoSuchBeanError",
    "BeanWireNotRefreshedError",
    "BeanWirePropertyCycleError",
    "BeanWirePropertyError",
    "BeanWireRegisterAfterRefreshError",
    "CancelContext",
    "Condition",
    "ConditionContext",
    "Configurer",
    "Const",
    "Container",
    "DisposableBean",
    "Export",
    "InitializingBean",
    "Inject",
    "Logger",
    "Not",
    "OnBean",
    "OnMatches",
    "OnMissingBean",
    "OnMissingProperty",
    "OnProfile",
    "OnProperty",
    "OnPropertyValue",
    "OnSingleCandidate",
    "Option",
    "Or",
    "Parent",
    "Properties",
    "Value",
    "new_bean",
    "value_bean",
]
